import logging

import pytest

import list_ips

class FakeRunner:
    """Command runner returning canned (returncode, stdout) per command."""

    def __init__(self, outputs=None):
        self.outputs = outputs or {}
        self.calls = []

    def __call__(self, argv):
        self.calls.append(list(argv))
        result = self.outputs.get(tuple(argv))
        if result is None:
            raise FileNotFoundError(f"No such command: {argv[0]}")
        if isinstance(result, BaseException):
            raise result
        return result

class FakeReader:
    """Pseudo-file reader serving canned contents per path."""

    def __init__(self, files=None):
        self.files = files or {}
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

@pytest.fixture(autouse=True)
def reset_logger_level():
    yield
    list_ips.logger.setLevel(logging.WARNING)

@pytest.fixture
def fake_runner():
    return FakeRunner()

@pytest.fixture
def fake_reader():
    return FakeReader()
