"""
Tests for error kinds and exit codes.
"""

from nodekeep.core.errors import (
    EXIT_CODES,
    ErrorKind,
    LockTimeout,
    NodekeepError,
    code_string_for,
    exit_code_for,
)


class TestExitCodes:
    def test_every_kind_has_a_code(self):
        assert set(EXIT_CODES) == set(ErrorKind)

    def test_codes_are_distinct_and_nonzero(self):
        codes = list(EXIT_CODES.values())
        assert len(codes) == len(set(codes))
        assert 0 not in codes

    def test_known_codes(self):
        assert exit_code_for(ErrorKind.CHECKSUM_MISMATCH) == 33
        assert exit_code_for(ErrorKind.LOCK_TIMEOUT) == 60
        assert exit_code_for(ErrorKind.CANCELLED) == 130

    def test_code_string(self):
        assert code_string_for(ErrorKind.DOWNLOAD_FAILED) == "NK-NET-032"
        assert code_string_for(ErrorKind.INVALID_VERSION_FORMAT) == "NK-ARG-071"


class TestNodekeepError:
    def test_carries_kind_and_hint(self):
        err = NodekeepError(ErrorKind.INVALID_ALIAS, "bad alias", hint="try another")
        assert err.kind is ErrorKind.INVALID_ALIAS
        assert err.message == "bad alias"
        assert err.hint == "try another"
        assert err.exit_code == 41
        assert "NK-INS-041" in str(err)

    def test_lock_timeout_names_lock_and_duration(self):
        err = LockTimeout("state", 2.5)
        assert err.kind is ErrorKind.LOCK_TIMEOUT
        assert "state" in err.message
        assert "2.5s" in err.message
