#!/usr/bin/env python3
"""
Derive Airnode endpoint ids for the validation API and save them as JSON.

The output is a single object mapping endpoint name to endpoint id, e.g.
``{"userStatus": "0x..."}``, rather than a list of ``{"name", "address"}``
records. An object lets ``--append`` merge new endpoints into an existing
file by name.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from tcoin_validation.oracle.encoding import derive_endpoint_id
from tcoin_validation.util.files import write_json_file

DEFAULT_TITLE = "tCoinValidation"
DEFAULT_ENDPOINTS = ["userStatus", "userRoot", "identityRoot", "root"]


def derive_endpoints(title: str, endpoint_names: List[str], path: str, mode: str = "w") -> Dict[str, str]:
    """Derive the endpoint id of each name under ``title`` and write name -> id to ``path``."""
    derived = {name: derive_endpoint_id(title, name) for name in endpoint_names}
    write_json_file(derived, path, mode)
    return derived


def main():
    parser = argparse.ArgumentParser(description='Derive Airnode endpoint ids')
    parser.add_argument('--title', default=DEFAULT_TITLE,
                        help=f'OIS title (default: {DEFAULT_TITLE})')
    parser.add_argument('--endpoint', action='append', dest='endpoints',
                        help='Endpoint name; repeat for several (default: the validation endpoints)')
    parser.add_argument('--output', default='apiEndpoints.json',
                        help='Output file (default: apiEndpoints.json)')
    parser.add_argument('--append', action='store_true',
                        help='Merge into an existing output file instead of overwriting it')

    args = parser.parse_args()

    derived = derive_endpoints(
        args.title,
        args.endpoints or DEFAULT_ENDPOINTS,
        args.output,
        mode="a" if args.append else "w"
    )
    for name, endpoint_id in derived.items():
        print(f"{name}: {endpoint_id}")


if __name__ == "__main__":
    main()
