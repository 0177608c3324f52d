"""
Write the OpenAPI document of the service to interfaces/openapi.json.

Usage:
  python -m salon_api.api.generate_openapi [output_path]
"""

import json
import os
import sys

from salon_api.api.main import app


# PUBLIC_INTERFACE
def write_openapi(output_path: str = os.path.join("interfaces", "openapi.json")) -> str:
    """Dump app.openapi() (all REST routes live under /api/v1) and return the written path."""
    openapi_schema = app.openapi()

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(openapi_schema, f, indent=2)
    return output_path


if __name__ == "__main__":
    write_openapi(*sys.argv[1:2])
