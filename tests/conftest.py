import pytest

from models.store import Store
import utils.file_manager as fm


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    fm.ensure_defaults(str(path))
    return str(path)


@pytest.fixture
def store(data_dir):
    return Store(data_dir=data_dir)
