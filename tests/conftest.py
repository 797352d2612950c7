"""
Pytest fixtures for chordlab tests.
"""
import pytest
import sys
from pathlib import Path
import tempfile
import shutil

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chordlab.theory.keys import Key, ScaleMode
from chordlab.timeline import TimelineSpec, build_regions
from chordlab.voicing.engine import voice_lead_regions


@pytest.fixture
def temp_dir():
    """Create temporary directory for test outputs."""
    tmp = tempfile.mkdtemp()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def c_major():
    return Key(0, ScaleMode.IONIAN)


@pytest.fixture
def a_minor():
    return Key(9, ScaleMode.AEOLIAN)


@pytest.fixture
def timeline_spec():
    """Sixteenth-note grid in 4/4."""
    return TimelineSpec(ticks_per_quarter=4)


@pytest.fixture
def project_config_dir():
    """Get the packaged configs directory."""
    return PROJECT_ROOT / 'chordlab' / 'configs'


@pytest.fixture
def voice_progression(timeline_spec):
    """Build and voice a progression, returning (regions, voiced)."""

    def _voice(progression, key=None, melody=None, **kwargs):
        key = key or Key(0, ScaleMode.IONIAN)
        regions = build_regions(progression, key, timeline_spec, melody=melody).unwrap()
        voiced = voice_lead_regions(key, timeline_spec, regions, **kwargs).unwrap()
        return regions, voiced

    return _voice
