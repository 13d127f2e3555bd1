import pytest

from conftest import FakeInspector
from errors import ConnectivityError
from services.backup.dump_options import (
    DumpOption,
    GENERAL_OPTIONS,
    options_for,
    resolve_dump_argv,
)
from services.backup.engine_classifier import EngineClass, EngineClassifier, classify_engines


def test_all_innodb():
    inspector = FakeInspector(engines={"mydb": {"t1": "InnoDB", "t2": "InnoDB"}})
    assert EngineClassifier(inspector).classify("mydb") is EngineClass.ALL_INNODB


def test_mixed_engines_are_other():
    inspector = FakeInspector(engines={"mydb": {"t1": "InnoDB", "t2": "MyISAM"}})
    assert EngineClassifier(inspector).classify("mydb") is EngineClass.OTHER


def test_no_tables_is_other():
    assert EngineClassifier(FakeInspector()).classify("empty") is EngineClass.OTHER


def test_engine_names_compared_case_insensitively():
    assert classify_engines(["innodb", "INNODB"]) is EngineClass.ALL_INNODB
    assert classify_engines(["InnoDB", None]) is EngineClass.OTHER


def test_query_failure_propagates():
    class Broken(FakeInspector):
        def table_engines(self, database):
            raise ConnectivityError("access denied")

    with pytest.raises(ConnectivityError):
        EngineClassifier(Broken()).classify("mydb")


def test_innodb_options_are_non_locking():
    argv = resolve_dump_argv(None, EngineClass.ALL_INNODB)
    assert argv[0] == "--skip-opt"
    assert "--single-transaction" in argv
    assert "--skip-lock-tables" in argv
    assert "--lock-tables" not in argv
    assert "--flush-logs" in argv


def test_other_options_lock_and_disable_keys():
    options = options_for(EngineClass.OTHER)
    assert options[:len(GENERAL_OPTIONS)] == GENERAL_OPTIONS
    assert DumpOption.LOCK_TABLES in options
    assert DumpOption.DISABLE_KEYS in options
    assert DumpOption.SINGLE_TRANSACTION not in options


def test_override_is_verbatim():
    override = ("--single-transaction", "--master-data=2")
    assert resolve_dump_argv(override, EngineClass.OTHER) == ["--single-transaction", "--master-data=2"]
