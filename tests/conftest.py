import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from commit_composer.tokens.counter import TokenCounter, set_default_counter


@pytest.fixture(scope="session", autouse=True)
def isolate_home_config():
    """Point the configuration directory at an empty temporary directory.

    Some tests expect no user-level config to exist; a real
    ``~/.commit_composer/config.json`` must not leak into them.
    """
    config_dir = Path(tempfile.mkdtemp(prefix="commit_composer_home_"))
    with patch("commit_composer.config.loader._get_config_directory", return_value=config_dir):
        try:
            yield config_dir
        finally:
            shutil.rmtree(str(config_dir), ignore_errors=True)


@pytest.fixture(scope="session", autouse=True)
def approximate_default_counter():
    """Keep the shared token counter offline: no tokenizer download in tests."""
    set_default_counter(TokenCounter(precise=False))
    try:
        yield
    finally:
        set_default_counter(None)
