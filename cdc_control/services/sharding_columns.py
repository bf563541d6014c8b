"""
Write-ordering columns per logic table, extracted from sharding rules.
"""

from typing import Collection, Dict, Iterable, Set

from cdc_control.domain.rule import ShardingRuleConfiguration, ShardingStrategyConfiguration


def _extract(strategy: ShardingStrategyConfiguration | None) -> Set[str]:
    return strategy.columns() if strategy is not None else set()


def get_sharding_columns_map(
    rules: Iterable[ShardingRuleConfiguration], logic_table_names: Collection[str]
) -> Dict[str, Set[str]]:
    """
    Sharding columns of each requested logic table.

    Table strategies fall back to the rule defaults; auto tables use their
    single sharding strategy. Tables without a rule are absent.
    """
    wanted = {each.lower() for each in logic_table_names}
    result: Dict[str, Set[str]] = {}
    for rule in rules:
        default_database_columns = _extract(rule.default_database_strategy)
        default_table_columns = _extract(rule.default_table_strategy)
        for table in rule.tables:
            if table.logic_table.lower() not in wanted:
                continue
            columns: Set[str] = set()
            columns |= (
                default_database_columns if table.database_strategy is None else _extract(table.database_strategy)
            )
            columns |= default_table_columns if table.table_strategy is None else _extract(table.table_strategy)
            result[table.logic_table] = columns
        for auto_table in rule.auto_tables:
            if auto_table.logic_table.lower() not in wanted:
                continue
            result[auto_table.logic_table] = _extract(auto_table.sharding_strategy)
    return result
