from phone_pilot.actions import to_absolute


def test_center():
    assert to_absolute(500, 500, 1080, 2400) == (540, 1200)


def test_edges():
    assert to_absolute(0, 0, 1080, 2400) == (0, 0)
    assert to_absolute(999, 999, 1080, 2400) == (1078, 2397)
    assert to_absolute(1000, 1000, 1080, 2400) == (1080, 2400)


def test_floor_division():
    assert to_absolute(1, 1, 1080, 2400) == (1, 2)
    assert to_absolute(333, 333, 720, 1600) == (239, 532)


def test_grid_stays_on_screen():
    for rel in range(0, 1000, 37):
        x, y = to_absolute(rel, rel, 1080, 2400)
        assert 0 <= x < 1080
        assert 0 <= y < 2400
