# frontend/run.py
# Entry point: puts frontend/ on sys.path so the funnel_dashboard package
# imports the same way whether or not the project is installed.

import os
import sys


def main():
    frontend_dir = os.path.dirname(os.path.abspath(__file__))
    sys.path.insert(0, frontend_dir)

    from funnel_dashboard.main import main as run_frontend_app
    run_frontend_app()


if __name__ == "__main__":
    main()
