"""
Agent Analytics API client
Thin wrapper over the hosted analytics HTTP API
"""

import logging
from typing import Optional, Dict, List, Any

import requests

from .exceptions import (
    AnalyticsAPIError,
    AnalyticsAuthenticationError,
    AnalyticsConnectionError,
    AnalyticsNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://api.agentanalytics.sh'


class AccountAPI:
    """Account API endpoints"""

    def __init__(self, client: 'AnalyticsClient'):
        self.client = client

    def get(self) -> Dict[str, Any]:
        """Get the account the API key belongs to"""
        return self.client._request('GET', '/account')

    def revoke_key(self) -> Dict[str, Any]:
        """Revoke the current API key and issue a new one

        Returns:
            Dictionary with the replacement key under 'api_key'
        """
        return self.client._request('POST', '/account/revoke-key')


class ProjectsAPI:
    """Projects API endpoints"""

    def __init__(self, client: 'AnalyticsClient'):
        self.client = client

    def list(self) -> List[Dict[str, Any]]:
        """List the account's projects"""
        response = self.client._request('GET', '/projects')
        if isinstance(response, dict) and 'projects' in response:
            return response['projects'] or []
        return response if isinstance(response, list) else []

    def get(self, project_id: str) -> Dict[str, Any]:
        """Get a single project by ID"""
        return self.client._request('GET', f'/projects/{project_id}')

    def create(self, name: str, allowed_origins: str = '*') -> Dict[str, Any]:
        """Create a project (or return the existing one for the same origin)

        Args:
            name: Project name
            allowed_origins: Origin(s) allowed to send events

        Returns:
            Dictionary with project_token, snippet, api_example and
            'existing' when the server matched an existing project
        """
        return self.client._request('POST', '/projects', json={
            'name': name,
            'allowed_origins': allowed_origins,
        })

    def update(
        self,
        project_id: str,
        name: Optional[str] = None,
        allowed_origins: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Update project fields"""
        data = {}
        if name is not None:
            data['name'] = name
        if allowed_origins is not None:
            data['allowed_origins'] = allowed_origins
        return self.client._request('PATCH', f'/projects/{project_id}', json=data)

    def delete(self, project_id: str) -> Dict[str, Any]:
        """Delete a project"""
        return self.client._request('DELETE', f'/projects/{project_id}')


class StatsAPI:
    """Read-only reporting endpoints"""

    def __init__(self, client: 'AnalyticsClient'):
        self.client = client

    def summary(self, project: str, days: int = 7, return_headers: bool = False) -> Any:
        """Totals, per-event counts and a daily series

        Args:
            project: Project name
            days: Days of data
            return_headers: Also return response headers (monthly usage
                is reported there)

        Returns:
            Stats dictionary, or (stats, headers) when return_headers is set
        """
        return self.client._request(
            'GET', '/stats',
            params={'project': project, 'days': days},
            return_headers=return_headers,
        )

    def events(
        self,
        project: str,
        event: Optional[str] = None,
        days: int = 7,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """Recent raw events"""
        return self.client._request('GET', '/events', params={
            'project': project,
            'days': days,
            'limit': limit,
            'event': event,
        })

    def properties(self, project: str, days: int = 30) -> Dict[str, Any]:
        """Property keys seen in the period"""
        return self.client._request('GET', '/properties', params={'project': project, 'days': days})

    def properties_received(
        self,
        project: str,
        since: Optional[str] = None,
        sample: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Property keys per event, sampled from recent events"""
        return self.client._request('GET', '/properties/received', params={
            'project': project,
            'since': since,
            'sample': sample,
        })

    def sessions(
        self,
        project: str,
        since: Optional[str] = None,
        limit: int = 100,
        user_id: Optional[str] = None,
        is_bounce: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Session list with optional user/bounce filters"""
        if is_bounce is not None:
            is_bounce = int(is_bounce)
        return self.client._request('GET', '/sessions', params={
            'project': project,
            'since': since,
            'limit': limit,
            'user_id': user_id,
            'is_bounce': is_bounce,
        })

    def query(self, project: str, **fields) -> Dict[str, Any]:
        """Flexible aggregate query

        Args:
            project: Project name
            **fields: metrics, group_by, filters, date_from, date_to,
                order_by, order, limit

        Returns:
            Query result dictionary
        """
        data = {'project': project}
        data.update({k: v for k, v in fields.items() if v is not None})
        return self.client._request('POST', '/query', json=data)

    def breakdown(
        self,
        project: str,
        property: str,
        event: Optional[str] = None,
        since: Optional[str] = None,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Value distribution of one property"""
        return self.client._request('GET', '/breakdown', params={
            'project': project,
            'property': property,
            'event': event,
            'since': since,
            'limit': limit,
        })

    def insights(self, project: str, period: str = '7d') -> Dict[str, Any]:
        """Period-over-period comparison"""
        return self.client._request('GET', '/insights', params={'project': project, 'period': period})

    def pages(
        self,
        project: str,
        type: str = 'entry',
        since: Optional[str] = None,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Entry and/or exit page performance"""
        return self.client._request('GET', '/pages', params={
            'project': project,
            'type': type,
            'since': since,
            'limit': limit,
        })

    def session_distribution(self, project: str, since: Optional[str] = None) -> Dict[str, Any]:
        """Session duration buckets"""
        return self.client._request('GET', '/sessions/distribution', params={
            'project': project,
            'since': since,
        })

    def heatmap(self, project: str, since: Optional[str] = None) -> Dict[str, Any]:
        """Activity by weekday and hour"""
        return self.client._request('GET', '/heatmap', params={'project': project, 'since': since})

    def funnel(self, project: str, steps: List[str], days: int = 30) -> Dict[str, Any]:
        """Step-by-step conversion through an ordered list of events"""
        return self.client._request('GET', '/funnel', params={
            'project': project,
            'steps': ','.join(steps),
            'days': days,
        })

    def retention(self, project: str, period: str = 'week', cohorts: int = 8) -> Dict[str, Any]:
        """Cohort retention table"""
        return self.client._request('GET', '/retention', params={
            'project': project,
            'period': period,
            'cohorts': cohorts,
        })


class ExperimentsAPI:
    """A/B experiment endpoints"""

    def __init__(self, client: 'AnalyticsClient'):
        self.client = client

    def create(
        self,
        project: str,
        name: str,
        variants: List[str],
        goal_event: str,
        weights: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        """Create an experiment

        Args:
            project: Project name
            name: Experiment name, used by the tracking snippet
            variants: Variant names (first one is the control)
            goal_event: Event counted as a conversion
            weights: Optional traffic split, one integer per variant

        Returns:
            Created experiment dictionary
        """
        data: Dict[str, Any] = {
            'project': project,
            'name': name,
            'variants': variants,
            'goal_event': goal_event,
        }
        if weights is not None:
            data['weights'] = weights
        return self.client._request('POST', '/experiments', json=data)

    def list(self, project: str) -> List[Dict[str, Any]]:
        """List a project's experiments"""
        response = self.client._request('GET', '/experiments', params={'project': project})
        if isinstance(response, dict) and 'experiments' in response:
            return response['experiments'] or []
        return response if isinstance(response, list) else []

    def get(self, experiment_id: str) -> Dict[str, Any]:
        """Get an experiment with per-variant results"""
        return self.client._request('GET', f'/experiments/{experiment_id}')

    def update(
        self,
        experiment_id: str,
        status: Optional[str] = None,
        winner: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Change status ('active', 'paused', 'completed') or declare a winner"""
        data = {}
        if status is not None:
            data['status'] = status
        if winner is not None:
            data['winner'] = winner
        return self.client._request('PATCH', f'/experiments/{experiment_id}', json=data)

    def delete(self, experiment_id: str) -> Dict[str, Any]:
        """Delete an experiment"""
        return self.client._request('DELETE', f'/experiments/{experiment_id}')


class LiveAPI:
    """Near-real-time activity endpoint"""

    def __init__(self, client: 'AnalyticsClient'):
        self.client = client

    def snapshot(self, project: str, window: int = 60) -> Dict[str, Any]:
        """Activity seen in the last `window` seconds

        Returns:
            Dict with keys:
              - active_visitors, active_sessions, events_per_minute
              - top_pages: [{path, visitors}]
              - recent_events: [{event, timestamp, user_id, properties}]
        """
        return self.client._request('GET', '/live', params={'project': project, 'window': window})


class AnalyticsClient:
    """
    Main Agent Analytics API client

    Usage:
        client = AnalyticsClient(
            base_url='https://api.agentanalytics.sh',
            api_key='aak_your_key'
        )

        # List projects
        projects = client.projects.list()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: Optional[str] = None,
        timeout: int = 30,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()

        self.session.headers['Content-Type'] = 'application/json'
        if api_key:
            self.session.headers['X-API-Key'] = api_key

        # Initialize API endpoints
        self.account = AccountAPI(self)
        self.projects = ProjectsAPI(self)
        self.stats = StatsAPI(self)
        self.experiments = ExperimentsAPI(self)
        self.live = LiveAPI(self)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
        return_headers: bool = False,
    ) -> Any:
        """Make HTTP request to API"""
        if params is not None:
            params = {k: v for k, v in params.items() if v is not None}

        url = f'{self.base_url}{path}'
        logger.debug('%s %s params=%s', method, url, params)

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise AnalyticsConnectionError(
                f'Request to {url} timed out after {self.timeout}s'
            ) from e
        except requests.RequestException as e:
            raise AnalyticsConnectionError(f'Request to {url} failed: {e}') from e

        if not response.ok:
            raise _error_for(response)

        if response.status_code == 204:
            data = None
        else:
            try:
                data = response.json()
            except ValueError:
                raise AnalyticsAPIError('Invalid JSON response', response.status_code)

        if return_headers:
            headers = {k.lower(): v for k, v in response.headers.items()}
            return data, headers
        return data

    def close(self):
        """Close the session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _error_for(response: requests.Response) -> AnalyticsAPIError:
    """Build the exception for a failed response, preferring the server's message."""
    message = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get('error')
    if not message:
        message = f'HTTP {response.status_code}'

    if response.status_code == 401:
        return AnalyticsAuthenticationError(message)
    if response.status_code == 404:
        return AnalyticsNotFoundError(message)
    return AnalyticsAPIError(message, response.status_code)
