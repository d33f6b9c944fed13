import matplotlib

matplotlib.use("Agg")

import pytest

from collision_risk.features.records import make_record


def group(n, injured, **categories):
    """n records sharing the same categories, the first `injured` of them injured."""
    return [make_record(i < injured, **categories) for i in range(n)]


@pytest.fixture
def baseline_records():
    """1,000 crashes, 100 injured: Bronx 40/20, Queens 960/80."""
    return group(40, 20, borough="Bronx") + group(960, 80, borough="Queens")


@pytest.fixture
def mixed_records():
    """Several dimensions with clearly different injury profiles."""
    records = []
    records += group(200, 80, borough="Brooklyn", factor1="Unsafe Speed", driver_sex="M")
    records += group(300, 30, borough="Queens", factor1="Driver Inattention/Distraction", driver_sex="F")
    records += group(250, 25, borough="Manhattan", factor1="Following Too Closely", driver_sex="M")
    records += group(150, 45, borough="Bronx", factor1="Unsafe Speed", vehicle_type="Sport Utility / Station Wagon")
    records += group(100, 5, borough="Staten Island", factor1="Unspecified", vehicle_type="Sedan")
    return records
