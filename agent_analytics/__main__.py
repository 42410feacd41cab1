"""Entry point: python -m agent_analytics"""

from .cli import main

if __name__ == "__main__":
    main()
