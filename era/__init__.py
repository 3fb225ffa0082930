import os
from pathlib import Path
from typing import Dict


def parse_env(text: str) -> Dict[str, str]:
    """``KEY=value`` pairs from .env text; comments, blanks and malformed lines are skipped."""
    pairs: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, val = line.strip().removeprefix("export ").partition("=")
        key, val = key.strip(), val.strip()
        if not sep or not key or key.startswith("#"):
            continue
        if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
            val = val[1:-1]
        pairs[key] = val
    return pairs


def load_env(path: Path = Path(".env")) -> None:
    # Tests must not pick up local credentials
    if os.getenv("PYTEST_CURRENT_TEST") or not path.is_file():
        return
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return
    for key, val in parse_env(text).items():
        os.environ.setdefault(key, val)


load_env()
