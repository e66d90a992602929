import pytest

from aerotrip.utils.wind import (
    angle_difference,
    average_wind,
    crosswind_component,
    from_vector,
    headwind_component,
    interpolate_direction,
    to_vector,
)


class TestComponents:

    def test_direct_headwind(self):
        assert headwind_component(90, 20, 90) == pytest.approx(20.0)

    def test_direct_tailwind(self):
        assert headwind_component(270, 20, 90) == pytest.approx(-20.0)

    def test_variable_and_calm(self):
        assert headwind_component(None, 15, 90) == 0.0
        assert headwind_component(270, 0, 90) == 0.0

    def test_headwind_continuous_across_north(self):
        values = [headwind_component(d, 30, c) for d, c in [(359.9, 0.0), (0.0, 0.0), (0.1, 359.9), (359.9, 0.1)]]
        for value in values:
            assert value == pytest.approx(30.0, abs=0.01)

    def test_crosswind_90_degrees(self):
        assert crosswind_component(180, 20, 90) == pytest.approx(20.0)

    def test_crosswind_variable_is_full_speed(self):
        assert crosswind_component(None, 12, 90) == 12.0

    def test_crosswind_calm(self):
        assert crosswind_component(None, 0, 90) == 0.0


class TestAngles:

    def test_angle_difference_wraps(self):
        assert angle_difference(10, 350) == pytest.approx(20.0)
        assert angle_difference(350, 10) == pytest.approx(-20.0)

    def test_interpolate_shorter_arc(self):
        assert interpolate_direction(350, 30, 0.5) == pytest.approx(10.0)

    def test_vector_round_trip(self):
        east, north = to_vector(270, 40)
        direction, speed = from_vector(east, north)
        assert direction == pytest.approx(270.0)
        assert speed == pytest.approx(40.0)


class TestAverageWind:

    def test_weighted_average(self):
        direction, speed = average_wind([(270, 20, 1.0), (270, 40, 3.0)])
        assert direction == pytest.approx(270.0)
        assert speed == pytest.approx(35.0)

    def test_opposing_winds_cancel(self):
        assert average_wind([(90, 20, 1.0), (270, 20, 1.0)]) == (None, 0.0)

    def test_variable_counts_as_calm(self):
        direction, speed = average_wind([(None, 30, 1.0), (360, 20, 1.0)])
        assert direction == pytest.approx(0.0, abs=1e-6) or direction == pytest.approx(360.0)
        assert speed == pytest.approx(10.0)

    def test_nothing_to_average(self):
        assert average_wind([]) == (None, 0.0)
        assert average_wind([(270, 20, 0.0)]) == (None, 0.0)
