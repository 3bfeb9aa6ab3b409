"""Rules for connectors that write data (destination capability).

Warehouse destinations stage CSV files and load them with SQL; activation
destinations push records to an API. Subtype-specific rules are gated by
the catalog, not here.
"""
from __future__ import annotations

import re

from ..core.config import Settings
from ..core.models import FileSet, Verdict, ok, skip, violation, warn
from ..scanners.classifier import stage_rejects
from ..scanners.java import JavaSource
from .registry import predicate
from .source import has_test

_NAMESPACE_APPLIED = re.compile(
    r"\bnamespaceRules\s*\.\s*(?:get|apply)\w*|\b(?:getTableName|getSchemaName|getDatabaseName)\s*\("
)
_TRACKING_COLUMNS = ("_supa_synced", "_supa_sync_id", "_supa_deleted")
_LOAD_MODES = {
    "APPEND": r"\bAPPEND\b",
    "MERGE": r"\bLoadMode\s*\.\s*MERGE\b|\bcase\s+MERGE\b",
    "OVERWRITE": r"\bOVERWRITE\b",
    "TRUNCATE_AND_LOAD": r"\bTRUNCATE_AND_LOAD\b",
}


def _map_to_target(files: FileSet):
    return files.primary.method("mapToTargetObject", return_type="ObjectMetadata")


def _load_file(files: FileSet) -> JavaSource | None:
    return files.first_with(lambda s: s.declares("load", return_type="LoadResponse"))


def _stage_file(files: FileSet) -> JavaSource | None:
    return files.first_with(lambda s: s.declares("stage", return_type="StageResponse"))


def _found(files: FileSet, *needles: str) -> JavaSource | None:
    """First source whose code (strings included, comments excluded) contains a needle."""
    return files.first_with(lambda s: s.contains(*needles))


@predicate("CHK-301")
def destination_capabilities(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if not primary.mentions("getCapabilitiesConfig"):
        return violation("missing getCapabilitiesConfig() for a destination")
    gaps = []
    if not primary.mentions("loadModes", "LoadMode"):
        gaps.append("loadModes")
    if not primary.mentions("destinationTableHandling", "DestinationTableHandling"):
        gaps.append("destinationTableHandling")
    if gaps:
        return warn("capabilities do not define " + ", ".join(gaps))
    return ok("capabilities define load modes and table handling")


@predicate("CHK-302")
def map_to_target_object(files: FileSet, settings: Settings) -> Verdict:
    if _map_to_target(files) is None:
        return violation("missing mapToTargetObject(); required for destinations")
    if not _NAMESPACE_APPLIED.search(files.primary.bare):
        return violation("mapToTargetObject() does not apply NamespaceRules; pipeline prefix is lost")
    return ok("mapToTargetObject() applies NamespaceRules")


@predicate("CHK-303")
def no_tracking_columns(files: FileSet, settings: Settings) -> Verdict:
    method = _map_to_target(files)
    if method is None:
        return skip("no mapToTargetObject() to inspect")
    added = [c for c in _TRACKING_COLUMNS if c in method.body]
    if added:
        return violation("mapToTargetObject() adds tracking columns: " + ", ".join(added))
    return ok("does not add _supa_* tracking columns")


@predicate("CHK-304")
def custom_attributes(files: FileSet, settings: Settings) -> Verdict:
    method = _map_to_target(files)
    if method is None:
        return skip("no mapToTargetObject() to inspect")
    if re.search(r"\bsetCustomAttributes\b|\bcustomAttributes\b|\bgetCustomAttributes\b", method.bare):
        return ok("preserves customAttributes")
    return violation("mapToTargetObject() may drop customAttributes (sync metadata)")


@predicate("CHK-305")
def load_method(files: FileSet, settings: Settings) -> Verdict:
    source = _load_file(files)
    if source is None:
        return violation("missing load(); required for destinations")
    gaps = []
    if not re.search(r"\bgetCallback\b|\.\s*callback\b", source.bare):
        gaps.append("callback progress reporting")
    if not source.mentions("getMetadataMapping", "getMappedMergedSourceMetadata"):
        gaps.append("metadata mapping")
    if gaps:
        return warn(f"load() in {source.name} does not use " + ", ".join(gaps))
    return ok(f"found load() in {source.name}")


@predicate("CHK-306")
def destination_integration_tests(files: FileSet, settings: Settings) -> Verdict:
    it = files.integration_test
    if it is None:
        return violation("no integration test file for destination tests")
    gaps = []
    if not has_test(it, ("testLoad", "testWrite", "testUpsert")):
        gaps.append("load/write test")
    if not it.contains("success_part_"):
        gaps.append("production CSV names (success_part_*.csv)")
    if not re.search(r"pipelinePrefix|pipeline_prefix|namespace\w*prefix", it.code, re.IGNORECASE):
        gaps.append("namespace prefix assertion")
    if gaps:
        return violation(f"{it.name} is missing: " + ", ".join(gaps))
    return ok(f"{it.name} covers load, CSV naming and namespace prefix")


# --- warehouse ---

@predicate("CHK-311")
def staging_config(files: FileSet, settings: Settings) -> Verdict:
    if files.primary.mentions("supportsStaging", "requiresStaging"):
        return ok("defines staging configuration")
    return violation("warehouse destination does not define staging configuration")


@predicate("CHK-312")
def load_mode_in_load(files: FileSet, settings: Settings) -> Verdict:
    source = _load_file(files)
    if source is None:
        return skip("no load() to inspect")
    if source.mentions("getLoadMode", "LoadMode"):
        return ok(f"load() in {source.name} handles LoadMode")
    return violation(f"load() in {source.name} ignores LoadMode")


@predicate("CHK-313")
def stage_method(files: FileSet, settings: Settings) -> Verdict:
    source = _stage_file(files)
    if source is None:
        return violation("warehouse destination has no stage() method")
    gaps = []
    if not source.contains("success_part_"):
        gaps.append("does not filter for success_part_*.csv")
    body = source.method("stage", return_type="StageResponse").body
    if re.search(r"\btableName\s*\+\s*\"_", body):
        gaps.append("looks for <table>_*.csv, which finds no files in production")
    if gaps:
        return violation(f"stage() in {source.name} " + "; ".join(gaps))
    return ok(f"stage() in {source.name} uses success_part_*.csv")


@predicate("CHK-314")
def staging_load(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "COPY INTO", "executeCopyInto", "copyInto")
    if found:
        return ok(f"COPY INTO implemented in {found.name}")
    found = _found(files, "uploadToStage", "stageLocation") or files.first_with(
        lambda s: s.search(r"\bPUT\s.*stage") is not None
    )
    if found:
        return ok(f"staging upload implemented in {found.name}")
    return violation("no COPY INTO or staging upload implementation")


@predicate("CHK-315")
def merge_implementation(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "MERGE INTO", "executeMerge", "buildMergeSql")
    if found:
        return ok(f"MERGE implemented in {found.name}")
    return violation("no MERGE implementation; LoadMode.MERGE is unsupported")


@predicate("CHK-316")
def load_mode_variants(files: FileSet, settings: Settings) -> Verdict:
    handled = [
        mode for mode, pattern in _LOAD_MODES.items()
        if files.first_with(lambda s, p=pattern: re.search(p, s.bare) is not None)
    ]
    if not handled:
        return violation("no LoadMode handling found")
    return ok("handles " + ", ".join(handled))


@predicate("CHK-317")
def ddl_generation(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "CREATE TABLE", "createTable", "buildCreateTableSql")
    if found is None:
        return violation("no CREATE TABLE implementation")
    if _found(files, "ALTER TABLE", "alterTable", "buildAlterTableSql"):
        return ok("CREATE TABLE and ALTER TABLE (schema evolution) implemented")
    return ok("CREATE TABLE implemented; no ALTER TABLE (schema evolution may be unsupported)")


@predicate("CHK-318")
def warehouse_integration_tests(files: FileSet, settings: Settings) -> Verdict:
    it = files.integration_test
    if it is None:
        return skip("no integration test file")
    if has_test(it, ("testStage", "testCopyInto", "testMerge")):
        return ok("has staging/merge test")
    return violation(f"{it.name} has no staging/merge test")


# --- activation ---

@predicate("CHK-321")
def activation_target_mapping(files: FileSet, settings: Settings) -> Verdict:
    if _map_to_target(files) is None:
        return skip("no mapToTargetObject() to inspect")
    if files.primary.mentions("getActivationTarget", "activationTarget"):
        return ok("mapToTargetObject() handles activation_target metadata")
    return violation("activation destination does not handle activation_target in mapToTargetObject()")


@predicate("CHK-322")
def local_data_path(files: FileSet, settings: Settings) -> Verdict:
    source = _load_file(files)
    if source is None:
        return skip("no load() to inspect")
    if source.mentions("getLocalDataPath", "localDataPath"):
        return ok(f"load() in {source.name} reads localDataPath")
    return violation(f"load() in {source.name} does not use localDataPath")


@predicate("CHK-323")
def stage_rejected(files: FileSet, settings: Settings) -> Verdict:
    source = _stage_file(files)
    if source is None:
        return ok("no stage() method (correct for activation)")
    method = source.method("stage", return_type="StageResponse")
    if stage_rejects(method):
        return ok("stage() rejects with an exception")
    return violation("activation destination should throw UnsupportedOperationException in stage()")


@predicate("CHK-324")
def activation_target(files: FileSet, settings: Settings) -> Verdict:
    found = files.first_with(lambda s: s.mentions("getActivationTarget"))
    if found:
        return ok(f"reads activation_target in {found.name}")
    return violation("missing metadata.getActivationTarget(); the destination object is unknown")


@predicate("CHK-325")
def activation_target_field(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "getActivationTargetField", "activation_target_field")
    if found:
        return ok(f"maps fields through activation_target_field in {found.name}")
    return violation("missing field.getActivationTargetField(); source fields are not mapped")


@predicate("CHK-326")
def merge_keys(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "getSelectedMergeKeys", "selected_merge_keys", "externalIdField", "mergeKeys")
    if found:
        return ok(f"handles selected_merge_keys in {found.name}")
    return violation("missing selected_merge_keys handling for upserts")


@predicate("CHK-327")
def error_record_processor(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "ErrorRecordProcessor", "errorRecordProcessor")
    if found:
        return ok(f"reports per-record errors in {found.name}")
    return violation("no error record processor; per-record failures are not reported")


@predicate("CHK-328")
def success_record_processor(files: FileSet, settings: Settings) -> Verdict:
    found = _found(files, "SuccessRecordProcessor", "successRecordProcessor")
    if found:
        return ok(f"reports per-record successes in {found.name}")
    return violation("no success record processor")


@predicate("CHK-329")
def activation_integration_tests(files: FileSet, settings: Settings) -> Verdict:
    it = files.integration_test
    if it is None:
        return skip("no integration test file")
    if has_test(it, ("testActivation", "testUpsert", "testApiWrite")):
        return ok("has activation/upsert test")
    return violation(f"{it.name} has no activation test")
