from __future__ import annotations

from pathlib import Path

import pytest

from liftoff.env import EnvNamespace, EnvVarError, envs


def reader(**values: str) -> EnvNamespace:
    return EnvNamespace(values)


def test_string_reads_live_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    variable = envs.LIFTOFF_TEST_STRING
    monkeypatch.setenv("LIFTOFF_TEST_STRING", "hello")
    assert variable.string() == "hello"
    assert variable.s() == "hello"
    assert str(variable) == "hello"

    monkeypatch.setenv("LIFTOFF_TEST_STRING", "changed")
    assert variable.string() == "changed"


def test_string_default_and_missing() -> None:
    env = reader()

    assert env.TEST_STRING.string("def") == "def"
    with pytest.raises(EnvVarError, match='Env var "TEST_STRING" is not set'):
        env.TEST_STRING.string()


def test_string_empty_handling() -> None:
    env = reader(TEST_STRING="")

    with pytest.raises(EnvVarError, match='Env var "TEST_STRING" is empty'):
        env.TEST_STRING.string()
    assert env.TEST_STRING.string(non_empty=False) == ""


def test_item_access_and_dunder_lookup() -> None:
    env = reader(**{"WITH-DASH": "ok"})

    assert env["WITH-DASH"].string() == "ok"
    assert env["WITH-DASH"].name == "WITH-DASH"
    with pytest.raises(AttributeError):
        env.__wrapped__


def test_match_returns_first_match() -> None:
    assert reader(TEST_MATCH="foo123bar").TEST_MATCH.match(r"\d+") == "123"

    with pytest.raises(EnvVarError) as error:
        reader(TEST_MATCH="foobar").TEST_MATCH.match(r"\d+")
    assert str(error.value) == 'Env var "TEST_MATCH" doesn\'t match expected format \\d+'


def test_path_checks(tmp_path: Path) -> None:
    file_path = tmp_path / "file.txt"
    file_path.write_text("x")
    missing = tmp_path / "missing"

    assert reader(TEST_PATH="/some/path").TEST_PATH.path() == "/some/path"
    assert reader(TEST_PATH=str(file_path)).TEST_PATH.path(exist=True) == str(file_path)
    assert reader(TEST_PATH=str(tmp_path)).TEST_PATH.path(exist=True) == str(tmp_path)
    assert reader(TEST_PATH=str(file_path)).TEST_PATH.path(file=True) == str(file_path)
    assert reader(TEST_PATH=str(missing)).TEST_PATH.path(file=True) == str(missing)

    with pytest.raises(EnvVarError, match="path doesn't exist"):
        reader(TEST_PATH=str(missing)).TEST_PATH.path(exist=True)
    with pytest.raises(EnvVarError, match="is not a file path"):
        reader(TEST_PATH=str(tmp_path)).TEST_PATH.path(file=True)
    with pytest.raises(EnvVarError, match="is not a directory path"):
        reader(TEST_PATH=str(file_path)).TEST_PATH.path(file=False)


def test_url() -> None:
    parsed = reader(TEST_URL="https://example.com/foo").TEST_URL.url()

    assert parsed.hostname == "example.com"
    assert parsed.path == "/foo"
    with pytest.raises(EnvVarError, match="is not a valid URL"):
        reader(TEST_URL="notaurl").TEST_URL.url()


def test_ip_addresses() -> None:
    assert reader(TEST_IP="127.0.0.1").TEST_IP.ip() == "127.0.0.1"
    assert reader(TEST_IP="127.0.0.1").TEST_IP.ipv4() == "127.0.0.1"
    assert reader(TEST_IP="::1").TEST_IP.ipv6() == "::1"

    with pytest.raises(EnvVarError, match='Env var "TEST_IP" is not a valid IP address'):
        reader(TEST_IP="foo").TEST_IP.ip()
    with pytest.raises(EnvVarError, match="is not a valid IPv4 address"):
        reader(TEST_IP="::1").TEST_IP.ipv4()
    with pytest.raises(EnvVarError, match="is not a valid IPv6 address"):
        reader(TEST_IP="127.0.0.1").TEST_IP.ipv6()


def test_numbers() -> None:
    assert reader(TEST_NUM="42").TEST_NUM.number() == 42
    assert reader().TEST_NUM.number(7) == 7

    with pytest.raises(EnvVarError, match="is not a valid number"):
        reader(TEST_NUM="foo").TEST_NUM.number()
    with pytest.raises(EnvVarError, match=r'Env var "TEST_NUM" value is too small \(<20\)'):
        reader(TEST_NUM="10").TEST_NUM.number(min=20)
    with pytest.raises(EnvVarError, match=r"value is too large \(>5\)"):
        reader(TEST_NUM="10").TEST_NUM.number(max=5)


def test_integers_and_ports() -> None:
    assert reader(TEST_INT="5").TEST_INT.int() == 5
    assert reader(TEST_INT="5.5").TEST_INT.int(strict=False) == 5
    assert reader(TEST_PORT="3000").TEST_PORT.port() == 3000

    with pytest.raises(EnvVarError, match="is not a valid integer"):
        reader(TEST_INT="5.5").TEST_INT.int()
    for value in ("70000", "-1"):
        with pytest.raises(EnvVarError, match="is not a valid port number"):
            reader(TEST_PORT=value).TEST_PORT.port()


def test_booleans() -> None:
    assert reader(TEST_BOOL="TRUE").TEST_BOOL.bool() is True
    assert reader(TEST_BOOL="no").TEST_BOOL.bool() is False
    assert reader(TEST_BOOL="1").TEST_BOOL.bool() is True
    assert reader().TEST_BOOL.bool(False) is False
    assert reader(TEST_BOOL="on").TEST_BOOL.bool(mapping={"on": True, "off": False}) is True

    with pytest.raises(EnvVarError, match="is not a valid boolean"):
        reader(TEST_BOOL="yes").TEST_BOOL.bool(strict=True)
    with pytest.raises(EnvVarError, match="is not set"):
        reader().TEST_BOOL.bool()
