import pytest

from objdiff.font_matching import FontNotFoundError, FontProperties, Style, find_best_match


def props(weight=400.0, stretch=1.0, style=Style.NORMAL):
    return FontProperties(style=style, weight=weight, stretch=stretch)


def test_empty_candidates():
    with pytest.raises(FontNotFoundError):
        find_best_match([], FontProperties())


def test_exact_match():
    candidates = [props(700), props(400), props(400, style=Style.ITALIC)]
    assert find_best_match(candidates, FontProperties()) == 1


def test_first_of_equal_matches():
    candidates = [props(300), props(400), props(400)]
    assert find_best_match(candidates, props(400)) == 1


def test_weight_400_prefers_500():
    candidates = [props(300), props(500)]
    assert find_best_match(candidates, props(400)) == 1


def test_weight_480_prefers_400():
    candidates = [props(600), props(400)]
    assert find_best_match(candidates, props(480)) == 1


def test_light_weight_prefers_thinner():
    candidates = [props(350), props(200), props(100)]
    assert find_best_match(candidates, props(300)) == 1


def test_light_weight_falls_back_to_heavier():
    candidates = [props(900), props(600)]
    assert find_best_match(candidates, props(300)) == 1


def test_heavy_weight_prefers_heavier():
    candidates = [props(500), props(700), props(900)]
    assert find_best_match(candidates, props(600)) == 1


def test_heavy_weight_falls_back_to_lighter():
    candidates = [props(300), props(500)]
    assert find_best_match(candidates, props(800)) == 1


@pytest.mark.parametrize(
    "query, available, expected",
    [
        (Style.ITALIC, [Style.NORMAL, Style.OBLIQUE], 1),
        (Style.OBLIQUE, [Style.NORMAL, Style.ITALIC], 1),
        (Style.NORMAL, [Style.ITALIC, Style.OBLIQUE], 1),
        (Style.ITALIC, [Style.NORMAL], 0),
    ],
)
def test_style_preference(query, available, expected):
    candidates = [props(style=s) for s in available]
    assert find_best_match(candidates, props(style=query)) == expected


def test_narrow_query_prefers_narrower():
    candidates = [props(stretch=1.25), props(stretch=0.75), props(stretch=0.5)]
    assert find_best_match(candidates, props(stretch=0.875)) == 1


def test_narrow_query_falls_back_to_wider():
    candidates = [props(stretch=1.5), props(stretch=1.25)]
    assert find_best_match(candidates, props(stretch=1.0)) == 1


def test_wide_query_prefers_wider():
    candidates = [props(stretch=1.25), props(stretch=2.0), props(stretch=1.75)]
    assert find_best_match(candidates, props(stretch=1.5)) == 2


def test_stretch_filters_before_weight():
    candidates = [props(400, stretch=0.5), props(700, stretch=1.0)]
    assert find_best_match(candidates, props(400, stretch=1.0)) == 1


def test_result_is_valid_index():
    candidates = [props(w, stretch=s) for w in (100, 400, 900) for s in (0.5, 1.0, 2.0)]
    for query in candidates:
        index = find_best_match(candidates, query)
        assert candidates[index] == query