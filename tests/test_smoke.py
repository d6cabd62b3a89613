import pubsolve
from pubsolve import __version__


def test_version():
    assert __version__ == "0.1.0"


def test_public_api_exports():
    for name in pubsolve.__all__:
        assert hasattr(pubsolve, name)


def test_quickstart(diamond_fetcher):
    resolution = pubsolve.Resolver(diamond_fetcher).resolve_sync(
        [pubsolve.Dependency.parse("vendor/a", "^1.0")]
    )
    assert resolution.version_of("vendor/a").text == "1.0.0"
