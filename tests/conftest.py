"""
Pytest configuration and shared fixtures.
"""
import pytest
import tempfile
import os
from pathlib import Path
from unittest.mock import Mock


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(json_data=None, content=b"", status_code=200, headers=None):
    """Build a mock ``requests.Response``."""
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.content = content
    response.text = content.decode("utf-8") if isinstance(content, bytes) else content
    response.json.return_value = json_data
    response.raise_for_status.return_value = None
    return response


def make_paper(source="openalex", external_id="W1", **overrides):
    """Build a Paper with sensible defaults."""
    from research_archive.models import Author, ExternalIds, Paper

    values = {
        "id": f"{source}:{external_id}",
        "title": f"Paper {external_id}",
        "authors": [Author(name="Ada Lovelace")],
        "abstract": "An abstract.",
        "date": "2023-01-15",
        "source": source,
        "external_ids": ExternalIds(),
        "citations": 0,
        "access_type": "open",
        "url": f"https://example.org/{external_id}",
    }
    values.update(overrides)
    return Paper(**values)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir

    # Cleanup
    import shutil
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def sample_config_dir(temp_dir):
    """Create a temporary directory with a sample settings file."""
    config_dir = Path(temp_dir) / "config"
    config_dir.mkdir()

    settings_content = """
api:
  user_agent: "ResearchArchive/1.0 (Test Suite)"
  contact_email: "tests@example.com"
  request_timeout: 10
  health_timeout: 2

cache:
  search_max_entries: 50
  paper_max_entries: 100
  search_ttl: 60
  paper_ttl: 120

search:
  default_limit: 10
  default_sources:
    - arxiv
    - openalex
  featured_limit: 4
"""

    with open(config_dir / "settings.yaml", "w") as f:
        f.write(settings_content)

    return config_dir


@pytest.fixture
def fake_clock():
    """A clock tests can advance by hand."""
    return FakeClock()


@pytest.fixture
def sample_papers():
    """Create sample Paper objects for testing."""
    from research_archive.models import Author, ExternalIds

    return [
        make_paper(
            "crossref",
            "10.1038/nature.2023.12345",
            title="Deep Learning for Protein Folding",
            authors=[Author(name="John Doe"), Author(name="Jane Smith")],
            journal="Nature",
            date="2023-01-15",
            citations=120,
            external_ids=ExternalIds(doi="10.1038/nature.2023.12345"),
            access_type="restricted",
        ),
        make_paper(
            "arxiv",
            "2301.12345",
            title="Attention Is Still All You Need",
            authors=[Author(name="Bob Johnson")],
            date="2023-02-10T12:00:00Z",
            external_ids=ExternalIds(arxiv_id="2301.12345"),
        ),
        make_paper(
            "openalex",
            "W4200000001",
            title="Graph Neural Networks in Chemistry",
            authors=[Author(name="Alice Brown"), Author(name="Charlie Wilson")],
            journal="Cell",
            date="2022-03-05",
            citations=45,
            external_ids=ExternalIds(open_alex_id="W4200000001", doi="10.1016/j.cell.2022.11111"),
        ),
    ]


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Keep environment overrides from leaking into configuration tests."""
    keys = ("RESEARCH_ARCHIVE_EMAIL", "RESEARCH_ARCHIVE_TIMEOUT")

    original_env = {key: os.environ.pop(key, None) for key in keys}

    yield

    for key, original_value in original_env.items():
        if original_value is not None:
            os.environ[key] = original_value
        else:
            os.environ.pop(key, None)


# Pytest markers for different test categories
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "external: mark test as requiring external APIs"
    )


def pytest_collection_modifyitems(config, items):
    """Skip external tests when asked to."""
    if config.getoption("--skip-external"):
        skip_external = pytest.mark.skip(reason="--skip-external option given")
        for item in items:
            if "external" in item.keywords:
                item.add_marker(skip_external)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--skip-external",
        action="store_true",
        default=False,
        help="Skip tests that require external API access"
    )
