import pytest

from perimeter_ifc.models import BuildingModel

from builders import single_storey_model


@pytest.fixture
def simple_model() -> BuildingModel:
    return single_storey_model()
