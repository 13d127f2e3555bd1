from enum import Enum
from typing import Optional, Sequence, Tuple

from services.backup.engine_classifier import EngineClass


class DumpOption(Enum):
    SKIP_OPT = "--skip-opt"
    OPT = "--opt"
    ADD_DROP_TABLE = "--add-drop-table"
    ADD_LOCKS = "--add-locks"
    CREATE_OPTIONS = "--create-options"
    EXTENDED_INSERT = "--extended-insert"
    QUICK = "--quick"
    FLUSH_LOGS = "--flush-logs"
    SKIP_LOCK_TABLES = "--skip-lock-tables"
    SINGLE_TRANSACTION = "--single-transaction"
    LOCK_TABLES = "--lock-tables"
    DISABLE_KEYS = "--disable-keys"


# --skip-opt resets the option group, so it must stay first
GENERAL_OPTIONS: Tuple[DumpOption, ...] = (
    DumpOption.SKIP_OPT,
    DumpOption.ADD_DROP_TABLE,
    DumpOption.ADD_LOCKS,
    DumpOption.CREATE_OPTIONS,
    DumpOption.EXTENDED_INSERT,
    DumpOption.QUICK,
    DumpOption.FLUSH_LOGS,
)

INNODB_OPTIONS: Tuple[DumpOption, ...] = (
    DumpOption.SKIP_LOCK_TABLES,
    DumpOption.SINGLE_TRANSACTION,
)

OTHER_OPTIONS: Tuple[DumpOption, ...] = (
    DumpOption.OPT,
    DumpOption.LOCK_TABLES,
    DumpOption.DISABLE_KEYS,
)


def options_for(engine_class: EngineClass) -> Tuple[DumpOption, ...]:
    specific = INNODB_OPTIONS if engine_class is EngineClass.ALL_INNODB else OTHER_OPTIONS
    return GENERAL_OPTIONS + specific


def to_argv(options: Sequence[DumpOption]) -> list[str]:
    return [option.value for option in options]


def resolve_dump_argv(override: Optional[Sequence[str]], engine_class: Optional[EngineClass]) -> list[str]:
    """An explicit override is used verbatim; otherwise the engine decides."""
    if override:
        return list(override)
    if engine_class is None:
        raise ValueError("engine_class is required when no dump option override is configured")
    return to_argv(options_for(engine_class))
