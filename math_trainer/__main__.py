from __future__ import annotations

import logging
import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    Lets ``python math_trainer/__main__.py`` work as well as
    ``python -m math_trainer``.
    """
    repo_root_str = str(Path(__file__).resolve().parent.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    from .app import run  # type: ignore[attr-defined]
    from .settings import log_level_name  # type: ignore[attr-defined]
except ImportError:
    _ensure_repo_root_on_path()
    from math_trainer.app import run  # type: ignore[attr-defined]
    from math_trainer.settings import log_level_name  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for running the trainer from the command line."""
    logging.basicConfig(
        level=getattr(logging, log_level_name(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
