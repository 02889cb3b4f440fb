import pytest

from fakes import RecordingActivator


@pytest.fixture
def activator():
    return RecordingActivator()
