from datetime import date

import pytest
from jifty_client.errors import InvalidInputError
from jifty_client.utils import (
    canonical_model_name,
    email_eq,
    escape,
    form_url_encoded_args,
    join_url,
    load_date,
    load_yaml,
)


def test_escape_reserved_characters():
    assert escape("a b/c?d") == "a%20b%2Fc%3Fd"


def test_escape_leaves_unreserved_marks():
    assert escape("Az09_.!~*'()-") == "Az09_.!~*'()-"


def test_escape_utf8():
    assert escape("café") == "caf%C3%A9"


def test_escape_scalars():
    assert escape(42) == "42"
    assert escape(True) == "1"
    assert escape(None) == ""


def test_join_url_skips_none():
    assert join_url("model", "My App", None, 5) == "model/My%20App/5"


def test_form_url_encoded_args_mapping_and_pairs():
    assert form_url_encoded_args({"x": 1, "y": "a&b"}) == "x=1&y=a%26b"
    assert form_url_encoded_args([("x", 1), ("x", 2)]) == "x=1&x=2"
    assert form_url_encoded_args(None) == ""


def test_load_date():
    assert load_date("2008-01-02") == date(2008, 1, 2)
    assert load_date("2008-01-02 00:00:00") == date(2008, 1, 2)


@pytest.mark.parametrize("text", ["2008-1-2", "2008-01-02 12:30:00", "tomorrow", ""])
def test_load_date_rejects_other_formats(text):
    with pytest.raises(InvalidInputError):
        load_date(text)


def test_email_eq():
    assert email_eq(None, None)
    assert not email_eq("a@example.com", None)
    assert email_eq("Foo Bar <FOO@Example.com>", "foo@example.com")
    assert email_eq("nobody", "Nobody <nobody>")
    assert not email_eq("foo@example.com", "bar@example.com")


def test_canonical_model_name():
    assert canonical_model_name("MyApp::Model::Task") == "Task"
    assert canonical_model_name("MyApp.Model.Task") == "Task"
    assert canonical_model_name("Task") == "Task"


def test_load_yaml_reads_perl_objects_as_plain_data():
    text = "--- !!perl/hash:Jifty::Result\nsuccess: 1\ncontent: !!perl/array:Foo\n  - 1\n  - 2\n"
    assert load_yaml(text) == {"success": 1, "content": [1, 2]}


def test_load_yaml_plain_scalars_stay_strings():
    text = "zip: 35294\nanswer: yes\nborn: 2008-01-01\nratio: 1.5\nempty:\nnothing: ~\nquoted: '7'\n"
    assert load_yaml(text, plain_scalars=True) == {
        "zip": "35294",
        "answer": "yes",
        "born": "2008-01-01",
        "ratio": "1.5",
        "empty": None,
        "nothing": None,
        "quoted": "7",
    }
    assert load_yaml("zip: 35294\n")["zip"] == 35294
