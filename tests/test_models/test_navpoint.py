import pytest

from aerotrip.models.navpoint import NavPoint, path_distance


class TestNavPoint:

    def test_invalid_latitude(self):
        with pytest.raises(ValueError):
            NavPoint(91.0, 0.0)

    def test_invalid_longitude(self):
        with pytest.raises(ValueError):
            NavPoint(0.0, -181.0)

    def test_distance_one_degree_latitude(self):
        a = NavPoint(40.0, -73.0)
        b = NavPoint(41.0, -73.0)
        # One degree of latitude is 60nm
        assert a.distance_to(b) == pytest.approx(60.04, abs=0.1)

    def test_course_due_north_and_east(self):
        origin = NavPoint(0.0, 0.0)
        assert origin.course_to(NavPoint(1.0, 0.0)) == pytest.approx(0.0, abs=0.01)
        assert origin.course_to(NavPoint(0.0, 1.0)) == pytest.approx(90.0, abs=0.01)

    def test_distance_is_symmetric(self):
        kfrg = NavPoint(40.7288, -73.4134)
        kpwm = NavPoint(43.6462, -70.3093)
        assert kfrg.distance_to(kpwm) == pytest.approx(kpwm.distance_to(kfrg))
        assert 215 < kfrg.distance_to(kpwm) < 230

    def test_point_from_bearing_distance_round_trip(self):
        origin = NavPoint(40.7288, -73.4134)
        target = origin.point_from_bearing_distance(45.0, 100.0, name="TGT")
        bearing, distance = origin.haversine_distance(target)
        assert target.name == "TGT"
        assert distance == pytest.approx(100.0, abs=0.01)
        assert bearing == pytest.approx(45.0, abs=0.01)

    def test_longitude_wraps_across_antimeridian(self):
        point = NavPoint(0.0, 179.5).point_from_bearing_distance(90.0, 60.0)
        assert -180 <= point.longitude < 180
        assert point.longitude == pytest.approx(-179.5, abs=0.01)

    def test_midpoint(self):
        a = NavPoint(40.0, -73.0)
        b = NavPoint(42.0, -73.0)
        assert a.midpoint(b).latitude == pytest.approx(41.0, abs=0.01)

    def test_dict_round_trip(self):
        point = NavPoint(40.7288, -73.4134, name="KFRG")
        assert NavPoint.from_dict(point.to_dict()) == point

    def test_path_distance(self):
        a = NavPoint(40.0, -73.0)
        b = NavPoint(41.0, -73.0)
        c = NavPoint(42.0, -73.0)
        assert path_distance([a, b, c]) == pytest.approx(a.distance_to(c), rel=1e-6)
        assert path_distance([a]) == 0
