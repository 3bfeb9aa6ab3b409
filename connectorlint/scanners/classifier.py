from __future__ import annotations

import re

from ..core.models import Classification, Delegation, DestinationSubtype, FileSet
from .java import JavaSource, Method

# Shared base types documented to supply lifecycle, cursor identification,
# cancellation wiring and schema crawling.
BASE_TYPES = {"BaseJdbcConnector"}

SOURCE_CAPABILITIES = ("REPLICATION_SOURCE",)
DESTINATION_CAPABILITIES = ("REPLICATION_DESTINATION", "REVERSE_ETL_DESTINATION")

ACTIVATION_MARKERS = ("getActivationTarget", "activationTarget")
STAGE_METHOD = "stage"
STAGE_RETURN_TYPE = "StageResponse"

_UNSUPPORTED = re.compile(r"\bUnsupportedOperationException\b")
_LEADING_THROW = re.compile(r"\A\s*throw\b")


class ConnectorClassifier:
    """Derives structural facts from the primary file. Never raises."""

    def classify(self, files: FileSet) -> Classification:
        return classify(files.primary)


def classify(primary: JavaSource) -> Classification:
    base = primary.superclass
    delegated = base in BASE_TYPES
    has_source = primary.mentions(*SOURCE_CAPABILITIES)
    has_destination = primary.mentions(*DESTINATION_CAPABILITIES)

    return Classification(
        delegation=Delegation.BASE_DELEGATED if delegated else Delegation.STANDALONE,
        has_source_capability=has_source,
        has_destination_capability=has_destination,
        destination_subtype=destination_subtype(primary) if has_destination else DestinationSubtype.NONE,
        base_type=base if delegated else None,
    )


def destination_subtype(primary: JavaSource) -> DestinationSubtype:
    """Warehouse stages files before loading; activation pushes rows through an API.

    A stage() that rejects, or any activation marker, means activation.
    A partially implemented warehouse whose stage() is stubbed with a throw
    is indistinguishable from an activation destination here.
    """
    has_marker = primary.mentions(*ACTIVATION_MARKERS)
    stage = primary.method(STAGE_METHOD, return_type=STAGE_RETURN_TYPE)
    if stage is not None:
        if stage_rejects(stage) or has_marker:
            return DestinationSubtype.ACTIVATION
        return DestinationSubtype.WAREHOUSE
    if has_marker:
        return DestinationSubtype.ACTIVATION
    return DestinationSubtype.WAREHOUSE


def stage_rejects(stage: Method) -> bool:
    """stage() opens with a throw, or names UnsupportedOperationException.

    A throw further down (a catch block rethrowing an upload error) is
    ordinary warehouse error handling, not a rejection.
    """
    body = stage.bare
    return bool(_UNSUPPORTED.search(body) or _LEADING_THROW.match(body))
