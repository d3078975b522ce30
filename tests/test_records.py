import os
import stat

import pytest

from psasctl.core.exceptions import RecordParseError, RecordValidationError
from psasctl.core.lib.records import (
    StructuredRecord,
    load_records,
    parse_records,
    render_records,
    save_records,
    strip_comment,
    validate_username,
)

SAMPLE = """
# TrustTunnel clients
[[client]]
username = "zoe"   # last alphabetically
password = "p#ss \\"quoted\\""

[[client]]
username = "adam"
password = "s3cret"
note = "ignored"
"""


def test_parse_sorted_with_comments_and_escapes():
    assert parse_records(SAMPLE) == [
        StructuredRecord("adam", "s3cret"),
        StructuredRecord("zoe", 'p#ss "quoted"'),
    ]


def test_lines_before_first_marker_are_ignored():
    text = 'username = "stray"\n[[client]]\nusername = "a"\npassword = "b"\n'
    assert parse_records(text) == [StructuredRecord("a", "b")]


def test_crlf_input():
    text = '[[client]]\r\nusername = "a"\r\npassword = "b"\r\n'
    assert parse_records(text) == [StructuredRecord("a", "b")]


def test_empty_text_has_no_records():
    assert parse_records("# nothing here\n") == []


@pytest.mark.parametrize(
    "text,message",
    [
        ('[[client]]\npassword = "x"\n', "client entry #1 is missing username"),
        ('[[client]]\nusername = "a"\n', "client 'a' is missing password"),
        ('[[client]]\nusername = "a"\npassword = "  "\n', "client 'a' is missing password"),
        (
            '[[client]]\nusername = "a"\npassword = "x"\n[[client]]\nusername = "A"\npassword = "y"\n',
            "duplicate username: A",
        ),
        ('[[client]]\nusername = alice\npassword = "x"\n', "invalid TOML string for username"),
        ('[[client]]\nusername = "a"\npassword = 42\n', "invalid TOML string for password"),
    ],
)
def test_parse_errors(text, message):
    with pytest.raises(RecordParseError, match=message):
        parse_records(text)


def test_strip_comment_respects_quotes():
    assert strip_comment('password = "a#b" # note') == 'password = "a#b"'
    assert strip_comment('password = "a\\"#b"') == 'password = "a\\"#b"'
    assert strip_comment("   # only a comment") == ""


def test_render_escapes_and_sorts():
    text = render_records([StructuredRecord("bob", 'tab\there "q" \\'), StructuredRecord("al", "x")])
    assert text == (
        '[[client]]\nusername = "al"\npassword = "x"\n'
        "\n"
        '[[client]]\nusername = "bob"\npassword = "tab\\there \\"q\\" \\\\"\n'
    )


def test_render_then_parse_preserves_records():
    records = [
        StructuredRecord("user.one@example", "  spaced  "),
        StructuredRecord("b-2", "ünïcode\u007f#"),
        StructuredRecord("A_3", 'quote" back\\slash\nnewline'),
    ]
    assert parse_records(render_records(records)) == sorted(records, key=lambda r: r.username.lower())


@pytest.mark.parametrize("username", ["", "  ", "has space", "bad/slash", "x" * 65, "semi;colon"])
def test_invalid_usernames(username):
    with pytest.raises(RecordValidationError):
        validate_username(username)


def test_valid_usernames():
    for username in ["alice", "A.b_c-d@e", "x" * 64]:
        validate_username(username)


def test_render_rejects_case_insensitive_duplicates():
    with pytest.raises(RecordValidationError, match="duplicate username"):
        render_records([StructuredRecord("Bob", "x"), StructuredRecord("bob", "y")])


def test_render_rejects_empty_password():
    with pytest.raises(RecordValidationError, match="password is empty"):
        render_records([StructuredRecord("bob", " ")])


def test_save_creates_private_file(tmp_path):
    path = tmp_path / "credentials.toml"
    save_records(path, [StructuredRecord("bob", "pw"), StructuredRecord("al", "pw2")])
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert load_records(path) == [StructuredRecord("al", "pw2"), StructuredRecord("bob", "pw")]


def test_save_keeps_existing_mode(tmp_path):
    path = tmp_path / "credentials.toml"
    path.write_text("")
    os.chmod(path, 0o640)
    save_records(path, [StructuredRecord("bob", "pw")])
    assert stat.S_IMODE(path.stat().st_mode) == 0o640


def test_rejected_write_leaves_file_untouched(tmp_path):
    path = tmp_path / "credentials.toml"
    save_records(path, [StructuredRecord("bob", "pw")])
    before = path.read_text()

    with pytest.raises(RecordValidationError):
        save_records(path, [StructuredRecord("bad name", "pw")])

    assert path.read_text() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["credentials.toml"]


def test_failed_rename_cleans_up_temp_file(tmp_path, monkeypatch):
    path = tmp_path / "credentials.toml"

    def fail(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail)
    with pytest.raises(OSError, match="disk full"):
        save_records(path, [StructuredRecord("bob", "pw")])
    assert list(tmp_path.iterdir()) == []


def test_load_names_the_file_on_parse_errors(tmp_path):
    path = tmp_path / "credentials.toml"
    path.write_text('[[client]]\nusername = "a"\n')
    with pytest.raises(RecordParseError, match="credentials.toml"):
        load_records(path)
