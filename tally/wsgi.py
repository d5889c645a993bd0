"""WSGI entrypoint for Tally."""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure project root is on sys.path when running this file directly
ROOT = Path(__file__).resolve().parent
PARENT = ROOT.parent
if str(PARENT) not in sys.path:
    sys.path.insert(0, str(PARENT))
if str(ROOT) in sys.path:
    sys.path.remove(str(ROOT))

from tally import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.logger.info("Server running on %s:%s", app.config["HOST"], app.config["PORT"])
    try:
        app.run(
            host=app.config["HOST"], port=app.config["PORT"], threaded=True, debug=False
        )  # nosec B104
    finally:
        # Let in-flight aggregations commit before the process exits.
        app.extensions["aggregation_worker"].shutdown(wait=True)
