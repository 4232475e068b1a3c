from pathlib import Path


def pytest_ignore_collect(collection_path, config):
    # Only the tests/ suite is collected; scripts/ are run by hand
    try:
        p = Path(str(collection_path))
        if p.name == "scripts" or "scripts" in p.parts:
            return True
    except Exception:
        return False
    return None
