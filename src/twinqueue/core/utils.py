"""Small core utilities used across the project."""

import os


def get_project_path():
    """Return the current working directory used as project root."""
    return os.getcwd()


def get_default_home_directory():
    """Default root directory of the file backend."""
    return os.path.join(get_project_path(), ".twinqueue")
