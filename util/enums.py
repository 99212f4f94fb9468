# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    BLUE = "\033[34m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    TEST = "test"
    PROD = "prod"


class FlattenMode(str, Enum):
    NONE = "none"
    SOFT = "soft"
    ALL = "all"


class StoreBackend(str, Enum):
    MEMORY = "memory"
    SUPABASE = "supabase"


class EmbeddingBackend(str, Enum):
    LOCAL = "local"
    OPENAI = "openai"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    TOO_MANY_PILLS = ErrorInfo("Maximum 20 pills allowed", status.HTTP_400_BAD_REQUEST)
    MISSING_PILL_TEXT = ErrorInfo(
        'Each pill must have a "pill" string property', status.HTTP_400_BAD_REQUEST
    )
    BAD_WEIGHT = ErrorInfo(
        "Weights must be between 0.1 and 2.0", status.HTTP_400_BAD_REQUEST
    )
    BAD_RESULTS_PER_PILL = ErrorInfo(
        "results_per_pill must be between 1 and 10", status.HTTP_400_BAD_REQUEST
    )
    NO_CONTENT = ErrorInfo(
        "No text extracted from document", status.HTTP_422_UNPROCESSABLE_ENTITY
    )
    UPSTREAM_ERROR = ErrorInfo("Upstream service failed", status.HTTP_502_BAD_GATEWAY)
