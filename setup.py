"""Setup script for the agent-analytics CLI."""

from setuptools import find_packages, setup

setup(
    name="agent-analytics",
    version="0.3.0",
    description="Command-line client for Agent Analytics: projects, reports and a live view",
    author="Agent Analytics Contributors",
    author_email="noreply@agentanalytics.sh",
    url="https://agentanalytics.sh",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.25.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "agent-analytics=agent_analytics.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
