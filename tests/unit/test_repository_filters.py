"""Unit tests for the Postgres repository filter builders."""

from hypnos.infrastructure.persistence.postgres.execution_repository import (
    _build_execution_filters,
)
from hypnos.infrastructure.persistence.postgres.permission_repository import (
    _build_permission_filters,
)


class TestBuildPermissionFilters:
    def test_no_filters(self) -> None:
        assert _build_permission_filters(None, None) == ("", [])

    def test_owner_and_active(self) -> None:
        where, params = _build_permission_filters("0xa1", False)
        assert where == " WHERE owner = %s AND active = %s"
        assert params == ["0xa1", False]

    def test_active_only(self) -> None:
        where, params = _build_permission_filters(None, True)
        assert where == " WHERE active = %s"
        assert params == [True]


class TestBuildExecutionFilters:
    def test_no_filters(self) -> None:
        assert _build_execution_filters(None, None, None) == ("", [])

    def test_all_filters(self) -> None:
        where, params = _build_execution_filters("0xa1", "0xcap", True)
        assert where == " WHERE caller = %s AND permission_id = %s AND success = %s"
        assert params == ["0xa1", "0xcap", True]

    def test_success_false_is_a_filter(self) -> None:
        where, params = _build_execution_filters(None, None, False)
        assert where == " WHERE success = %s"
        assert params == [False]
