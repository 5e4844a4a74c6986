import pytest

from src.office_tracker.office_tracker.common.geo import Coordinates, haversine_km, is_within_radius
from src.office_tracker.office_tracker.core.exceptions import ValidationError
from tests.fakes import SYDNEY_NEARBY, SYDNEY_OFFICE


def test_radius_boundary_is_exclusive():
    assert not is_within_radius(0.1000)
    assert is_within_radius(0.0999)


def test_nearby_point_is_inside_office_radius():
    distance = haversine_km(SYDNEY_NEARBY, SYDNEY_OFFICE)
    assert 0.07 < distance < 0.09
    assert is_within_radius(distance)


def test_haversine_known_distance():
    sydney = Coordinates(-33.8688, 151.2093)
    melbourne = Coordinates(-37.8136, 144.9631)
    assert haversine_km(sydney, melbourne) == pytest.approx(713.4, abs=5)


def test_coordinates_accept_both_key_styles():
    assert Coordinates.from_dict({"lat": 1, "lon": 2}) == Coordinates(1.0, 2.0)
    assert Coordinates.from_dict({"latitude": 1, "longitude": 2}) == Coordinates(1.0, 2.0)
    assert Coordinates.from_dict({}) is None
    assert Coordinates(1.0, 2.0).to_dict() == {"lat": 1.0, "lon": 2.0}


def test_coordinates_reject_garbage():
    with pytest.raises(ValidationError):
        Coordinates.from_dict({"lat": "north", "lon": 2})
