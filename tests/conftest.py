"""
Pytest Configuration
Puts src/ on the path and provides shared fixtures for storage, history and the chat relay.
"""
import sys
import os
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

# Add source code to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from penny_profit.config import LLMConfig
from penny_profit.history import HistoryStore
from penny_profit.storage import LocalStore


@pytest.fixture
def store_path(tmp_path):
    """Path of a local store file that does not exist yet."""
    return tmp_path / "local_store.json"


@pytest.fixture
def local_store(store_path):
    return LocalStore(str(store_path))


@pytest.fixture
def history_store(local_store):
    """An empty, loaded history store backed by a temp file."""
    store = HistoryStore(local_store)
    store.load()
    return store


@pytest.fixture
def llm_config():
    """LLM configuration with a fake credential."""
    return LLMConfig(model_name="gpt-3.5-turbo", api_key=SecretStr("sk-test-secret-123"))


def make_completion(content):
    """Build an object shaped like a LiteLLM completion response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message = MagicMock()
    response.choices[0].message.content = content
    return response


@pytest.fixture
def completion_response():
    return make_completion
