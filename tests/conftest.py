"""Root-level pytest fixtures for the granule_watch test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus fakes for the external tools and the stability wait.
All tests must use these fixtures instead of creating raw dict configs.
"""

import pytest
import subprocess
from pathlib import Path
import tempfile
import shutil

from granule_watch.schemas import ParamConfig, UserConfig, resolve_config
from granule_watch.schemas.param import VIIRS_PRODUCTS


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using make_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_trigger(make_config):
    ...     config = make_config(trigger_type="SVM12")
    ...     assert "SVM12" in config.required_types
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Granule Helpers
# =============================================================================

GRANULE_ID = "npp_d20240315_t0112345_e0113587"


def viirs_name(product, granule_id=GRANULE_ID):
    """Realistic SDR filename for a product of the given granule."""
    return f"{product}_{granule_id}_b63912_c20240315020311123456_noac_ops.h5"


@pytest.fixture
def granule_files(temp_dir):
    """Writes one file per default VIIRS product and returns their paths."""
    def _write(directory=None, granule_id=GRANULE_ID, products=VIIRS_PRODUCTS):
        directory = Path(directory or temp_dir)
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for product in products:
            path = directory / viirs_name(product, granule_id)
            path.write_bytes(b"\x89HDF" + product.encode())
            paths.append(path)
        return paths

    return _write


# =============================================================================
# Fakes
# =============================================================================

class FakeRunner:
    """Stands in for ``subprocess.run``.

    Records every argv and answers from ``responses``, keyed by the binary
    name (argv[0]). A response is a CompletedProcess, an exception instance
    to raise, or missing (exit 0, no output).
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        response = self.responses.get(argv[0])
        if isinstance(response, BaseException):
            raise response
        if response is None:
            return subprocess.CompletedProcess(argv, 0, stdout="", stderr="")
        return subprocess.CompletedProcess(
            argv, response.returncode, stdout=response.stdout, stderr=response.stderr,
        )

    def binaries(self):
        return [argv[0] for argv in self.calls]


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def no_sleep():
    """Sleeper that returns immediately."""
    return lambda seconds: None


@pytest.fixture
def make_name():
    """``make_name(product, granule_id=GRANULE_ID)`` -> SDR filename."""
    return viirs_name


@pytest.fixture
def granule_id():
    return GRANULE_ID


@pytest.fixture
def make_completed():
    """``make_completed(returncode, stdout, stderr)`` -> CompletedProcess for FakeRunner."""
    return completed


@pytest.fixture
def make_runner():
    """``make_runner(responses)`` -> FakeRunner."""
    return FakeRunner
