import pytest

from fakes import FakeCluster


@pytest.fixture
def fake_clusters():
    clusters = [
        FakeCluster("prod", version="v1.28.0"),
        FakeCluster("stage", version="v1.27.5"),
        FakeCluster("broken", hang=True),
    ]
    yield clusters
    for cluster in clusters:
        cluster.release.set()
