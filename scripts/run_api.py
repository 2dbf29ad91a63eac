#!/usr/bin/env python
"""
Run the Service Pricing API.

Usage:
    python scripts/run_api.py [--port 8000]
"""
import argparse
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the Service Pricing API")
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=8000)
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent

    print("Starting Service Pricing API (FastAPI)...")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "service_pricing.api.main:app",
            "--host", args.host,
            "--port", str(args.port),
            "--reload"
        ], cwd=str(project_root))
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
