""" This loads environment variables from a defined location """
import os
import pathlib
from typing import Dict, Iterable, Optional


DEFAULT_LOCATIONS = ('.env', '../.env')


def find_env_file(locations: Iterable[str] = DEFAULT_LOCATIONS) -> Optional[pathlib.Path]:
    for loc in locations:
        path = pathlib.Path(loc)
        if path.exists() and path.is_file():
            return path
    return None


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parses `KEY=value` lines, skipping comments and stripping `export ` and quotes."""
    values: Dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        key = key.replace('export ', '', 1).strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        if key:
            values[key] = value
    return values


def load_env(locations: Iterable[str] = DEFAULT_LOCATIONS, override: bool = False) -> Dict[str, str]:
    """Loads the first existing `.env` file into `os.environ`.

    Values already present in the process environment win unless `override` is set.
    Returns the parsed mapping (empty when no file was found).
    """
    env_file = find_env_file(locations)
    if env_file is None:
        return {}

    with open(env_file, encoding='utf-8') as f:
        values = parse_env_lines(f)

    for key, value in values.items():
        if override or key not in os.environ:
            os.environ[key] = value
    return values


if __name__ == "__main__":
    load_env()
