"""
Shared pytest fixtures for llm-generation tests.
"""

from __future__ import annotations

import pytest

from llm_generation.config import GeneratorConfig
from llm_generation.generator import ResilientGenerator
from tests.fakes import RecordingLogger, RecordingSleep, ScriptedBackend

# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_generator(recording_logger, recording_sleep):
    """Factory building a generator over a scripted backend."""

    def _factory(script=None, *, responder=None, config=None, **kwargs):
        backend = ScriptedBackend(script, responder=responder)
        generator = ResilientGenerator(
            backend,
            logger=recording_logger,
            config=config or GeneratorConfig(agent_name="tester"),
            sleep=recording_sleep,
            **kwargs,
        )
        return generator, backend

    return _factory
