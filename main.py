#!/usr/bin/env python3
"""
Main entry point for FlexFlow Gateway when running locally.
This file allows running the gateway directly from the project root.
"""

import sys
from pathlib import Path

# Add the src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))


def main():
    """Run the FlexFlow Gateway server."""
    import uvicorn
    from flexflow_gateway.main import create_app

    print("Starting FlexFlow Gateway locally...")
    print("Access at: http://localhost:5000")
    print("Health check: http://localhost:5000/health")
    print("Rate limit tiers: http://localhost:5000/api/ratelimit/policies")

    uvicorn.run(
        create_app(),
        host="127.0.0.1",
        port=5000,
        log_level="debug",
        reload=False
    )


if __name__ == "__main__":
    main()
