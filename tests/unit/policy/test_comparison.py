"""Tests for table-name and entity-type predicates."""

import pytest

from querycache.enums import TableNameComparison, TableTypeComparison
from querycache.policy.comparison import match_entity_types, match_table_names
from querycache.policy.extractor import EntityDescriptor


class TestMatchTableNames:
    """Test table-name comparisons."""

    @pytest.mark.parametrize(
        ("comparison", "configured", "expected"),
        [
            (TableNameComparison.CONTAINS, ["orders"], True),
            (TableNameComparison.CONTAINS, ["Products"], False),
            (TableNameComparison.DOES_NOT_CONTAIN, ["Products"], True),
            (TableNameComparison.DOES_NOT_CONTAIN, ["Users", "Orders"], False),
            (TableNameComparison.ENDS_WITH, ["ers"], True),
            (TableNameComparison.DOES_NOT_END_WITH, ["ers"], False),
            (TableNameComparison.STARTS_WITH, ["Ord"], True),
            (TableNameComparison.DOES_NOT_START_WITH, ["Ord"], True),
            (TableNameComparison.CONTAINS_EVERY, ["ORDERS", "users"], True),
            (TableNameComparison.CONTAINS_EVERY, ["Users"], False),
            (TableNameComparison.DOES_NOT_CONTAIN_EVERY, ["Users"], True),
            (TableNameComparison.CONTAINS_ONLY, ["Users", "Orders", "Products"], True),
            (TableNameComparison.CONTAINS_ONLY, ["Users"], False),
        ],
    )
    def test_comparisons(
        self, comparison: TableNameComparison, configured: list[str], expected: bool
    ) -> None:
        assert match_table_names(["Users", "Orders"], configured, comparison) is expected

    def test_order_does_not_matter(self) -> None:
        """Set semantics: reordering either side gives the same answer."""
        for comparison in TableNameComparison:
            assert match_table_names(
                ["Users", "Orders"], ["Orders", "Users"], comparison
            ) == match_table_names(["Orders", "Users"], ["Users", "Orders"], comparison)

    @pytest.mark.parametrize("comparison", list(TableNameComparison))
    def test_empty_lists_never_match(self, comparison: TableNameComparison) -> None:
        assert match_table_names([], ["Users"], comparison) is False
        assert match_table_names(["Users"], [], comparison) is False


class TestMatchEntityTypes:
    """Test entity-type comparisons."""

    USER = EntityDescriptor("Shop.User", "Users")
    ORDER = EntityDescriptor("Shop.Order", "Orders")

    def test_contains(self) -> None:
        assert match_entity_types([self.USER], ["Shop.User"], TableTypeComparison.CONTAINS)

    def test_case_sensitive(self) -> None:
        assert not match_entity_types([self.USER], ["shop.user"], TableTypeComparison.CONTAINS)

    def test_does_not_contain(self) -> None:
        assert match_entity_types(
            [self.USER], ["Shop.Order"], TableTypeComparison.DOES_NOT_CONTAIN
        )
        assert not match_entity_types(
            [self.USER], ["Shop.User"], TableTypeComparison.DOES_NOT_CONTAIN
        )

    def test_contains_every_ignores_order(self) -> None:
        assert match_entity_types(
            [self.ORDER, self.USER],
            ["Shop.User", "Shop.Order"],
            TableTypeComparison.CONTAINS_EVERY,
        )

    def test_contains_only(self) -> None:
        assert match_entity_types(
            [self.USER], ["Shop.User", "Shop.Order"], TableTypeComparison.CONTAINS_ONLY
        )
        assert not match_entity_types(
            [self.USER, self.ORDER], ["Shop.User"], TableTypeComparison.CONTAINS_ONLY
        )

    @pytest.mark.parametrize("comparison", list(TableTypeComparison))
    def test_empty_lists_never_match(self, comparison: TableTypeComparison) -> None:
        assert match_entity_types([], ["Shop.User"], comparison) is False
        assert match_entity_types([self.USER], [], comparison) is False
