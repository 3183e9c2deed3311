import pytest

from formcraft.engine.progress import compute_progress, is_answered, progress_percent
from formcraft.engine.schema import parse_schema


@pytest.fixture
def schema():
    return parse_schema({"fields": [{"key": "a"}, {"key": "b"}, {"key": "c"}]})


class TestProgress:
    def test_empty_answers(self, schema):
        assert compute_progress(schema, {}) == 0.0

    def test_partial(self, schema):
        assert compute_progress(schema, {"a": "x"}) == pytest.approx(100 / 3)
        assert progress_percent(schema, {"a": "x"}) == 33
        assert progress_percent(schema, {"a": "x", "b": "y"}) == 67

    def test_complete(self, schema):
        assert progress_percent(schema, {"a": "x", "b": 0, "c": False}) == 100

    def test_empty_string_is_unanswered(self, schema):
        assert compute_progress(schema, {"a": "", "b": None}) == 0.0

    def test_unknown_keys_do_not_count(self, schema):
        assert compute_progress(schema, {"zzz": "x", "yyy": "y", "xxx": "z", "www": "w"}) == 0.0

    def test_never_exceeds_bounds(self, schema):
        answers = {"a": "x", "b": "y", "c": "z", "d": "extra"}
        assert 0.0 <= compute_progress(schema, answers) <= 100.0

    def test_empty_schema(self):
        assert compute_progress(parse_schema({"fields": []}), {"a": "x"}) == 0.0

    def test_half_rounds_up(self):
        schema = parse_schema({"fields": [{"key": str(i)} for i in range(8)]})
        # 1/8 = 12.5%
        assert progress_percent(schema, {"0": "x"}) == 13

    def test_is_answered(self):
        assert is_answered([]) is True
        assert is_answered(0) is True
        assert is_answered("") is False
        assert is_answered(None) is False


def test_four_fields_two_answered():
    schema = parse_schema({"fields": [{"key": k} for k in "abcd"]})
    assert compute_progress(schema, {"a": "x", "c": 3}) == 50
