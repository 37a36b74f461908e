"""ERMS - Exam Records Management System.

Loads environment variables from a local .env file so that development and
test runs work without exporting configuration by hand.
"""

from pathlib import Path

from dotenv import load_dotenv

__version__ = "1.0.0"


def _load_local_env():
    # Try erms/.env first, then backend/.env, then the project root
    pkg_dir = Path(__file__).resolve().parent
    candidates = [
        pkg_dir / ".env",
        pkg_dir.parent / ".env",
        pkg_dir.parent.parent / ".env",
    ]
    for p in candidates:
        if p.exists():
            load_dotenv(dotenv_path=p, override=False)


_load_local_env()
