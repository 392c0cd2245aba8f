import pytest

from utils.color_scale import (
    HIGH_COLOR,
    LOW_COLOR,
    LOW_CONFIDENCE_COLOR,
    MID_COLOR,
    color_for,
    fill_for_score,
    format_score,
    score_value,
)


def _rgb(hex_color):
    s = hex_color.lstrip('#')
    return tuple(int(s[i:i + 2], 16) for i in (0, 2, 4))


def test_stops_are_exact():
    assert color_for(0) == LOW_COLOR
    assert color_for(0.5) == MID_COLOR
    assert color_for(1) == HIGH_COLOR


@pytest.mark.parametrize('raw, expected', [
    (-2, LOW_COLOR),
    (7, HIGH_COLOR),
    (float('nan'), LOW_COLOR),
    (float('inf'), LOW_COLOR),
    (None, LOW_COLOR),
    ('oops', LOW_COLOR),
    (True, LOW_COLOR),
])
def test_input_is_clamped(raw, expected):
    assert color_for(raw) == expected


def test_quarter_points_interpolate_each_half():
    # #F8696B -> #FFEB84 halfway, rounded half up
    assert color_for(0.25) == '#FCAA78'
    # #FFEB84 -> #63BE7B halfway
    assert color_for(0.75) == '#B1D580'


def test_gradient_is_continuous_around_midpoint():
    below = _rgb(color_for(0.4999))
    at = _rgb(color_for(0.5))
    above = _rgb(color_for(0.5001))
    assert all(abs(a - b) <= 1 for a, b in zip(below, at))
    assert all(abs(a - b) <= 1 for a, b in zip(above, at))


def test_channels_move_monotonically():
    reds = [_rgb(color_for(i / 20))[0] for i in range(11, 21)]
    greens = [_rgb(color_for(i / 20))[1] for i in range(0, 11)]
    assert reds == sorted(reds, reverse=True)
    assert greens == sorted(greens)


@pytest.mark.parametrize('score', [0, 0.3, 0.5, 0.59, 0.5999])
def test_low_confidence_override(score):
    assert fill_for_score(score) == LOW_CONFIDENCE_COLOR


@pytest.mark.parametrize('score', [0.6, 0.75, 1.0])
def test_threshold_and_above_use_gradient(score):
    assert fill_for_score(score) == color_for(score)


def test_format_score():
    assert format_score(0.8567) == '85.7%'
    assert format_score(0) == '0.0%'
    assert format_score('42.5%') == '42.5%'
    assert format_score(None) == ''
    assert score_value('85%') == pytest.approx(0.85)
    assert score_value('n/a') is None
