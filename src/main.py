"""Command-line entry point for the portal search MCP server."""
import asyncio
import sys
from pathlib import Path

# Allow running as `python src/main.py` from a checkout
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from src.server import main


def run() -> None:
    """Run the server over stdio until the client disconnects."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("[PortalSearch] Interrupted, shutting down", file=sys.stderr)


if __name__ == "__main__":
    run()
