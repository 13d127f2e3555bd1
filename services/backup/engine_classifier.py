from enum import Enum

from services.interfaces import IServerInspector


class EngineClass(Enum):
    ALL_INNODB = "innodb"
    OTHER = "other"


def classify_engines(engines) -> EngineClass:
    """ALL_INNODB only when every table uses InnoDB; no tables at all is OTHER."""
    distinct = {str(engine).lower() for engine in engines}
    return EngineClass.ALL_INNODB if distinct == {"innodb"} else EngineClass.OTHER


class EngineClassifier:
    def __init__(self, inspector: IServerInspector):
        self._inspector = inspector

    def classify(self, database: str) -> EngineClass:
        # ConnectivityError from the inspector propagates: never guess
        pairs = self._inspector.table_engines(database)
        return classify_engines(engine for _table, engine in pairs)
