"""Smoke test to verify testing infrastructure is working."""


def test_smoke():
    """Placeholder test that always passes."""
    assert True


def test_python_version():
    """Verify Python version meets requirements."""
    import sys

    assert sys.version_info >= (3, 11), "Python 3.11 or higher required"


def test_app_imports():
    """Application module should import and expose the FastAPI app."""
    from services.assistant_api.main import app

    assert app.title == "Assistant Backend"
