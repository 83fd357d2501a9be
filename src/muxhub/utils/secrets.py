"""
Secret management utilities for muxhub.

Blueprint ids, header tokens and the like are read from environment variables,
optionally populated from .env files for local development.
"""

from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Paths to check for .env files, in order of precedence
ENV_PATHS = [
    Path.cwd() / ".env",
    Path.cwd() / ".secrets.env",
    Path.home() / ".muxhub" / ".env",
]

def load_env_files(paths: Optional[List[Path]] = None) -> Optional[Path]:
    """
    Load environment variables from the first .env file that exists.

    Variables already present in the environment are not overridden.

    Args:
        paths: Candidate files, in order of precedence. Defaults to ENV_PATHS.

    Returns:
        The path that was loaded, or None if no file was found.
    """
    for env_path in paths if paths is not None else ENV_PATHS:
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            return env_path
    return None
