#!/usr/bin/env python3
"""
Start the validation API with uvicorn.

Settings come from the environment (see tcoin_validation/core/config.py);
--host and --port override HOST and PORT.
"""

import argparse
import sys
from pathlib import Path

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from tcoin_validation.api.main import create_app
from tcoin_validation.core.config import Config


def main():
    parser = argparse.ArgumentParser(description='Serve the tCoin validation API')
    parser.add_argument('--port', type=int, default=None,
                        help='Port to serve on (default: PORT or 8000)')
    parser.add_argument('--host', default=None,
                        help='Host to bind to (default: HOST or 127.0.0.1)')

    args = parser.parse_args()

    config = Config.from_env()
    if args.port is not None:
        config.port = args.port
    if args.host is not None:
        config.host = args.host

    try:
        app = create_app(config)
    except ValueError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"Starting server on http://{config.host}:{config.port} ...")
    uvicorn.run(app, host=config.host, port=config.port, log_level="debug" if config.debug else "info")


if __name__ == "__main__":
    main()
