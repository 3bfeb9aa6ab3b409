"""Rules for connectors that read data (source capability)."""
from __future__ import annotations

import re

from ..core.config import Settings
from ..core.models import FileSet, Verdict, ok, violation, warn
from .registry import predicate

_LIFECYCLE_METHODS = ("setRuntimeContext", "init", "schema", "read", "close")
_DESCRIPTOR_METHODS = ("getVersion", "getCapabilitiesConfig")
_CURSOR_FLAGS = ("setCursorField", "setSourceCursorField", "setCursorFieldLocked")
_INLINE_CURSOR = r"\bsetCursorField\s*\(\s*true\s*\)"
_HARDCODED_CURSOR = r"\bsetCursorField\s*\([^;]*\"(?:updated_at|modified_date)\""

_IT_TESTS = (
    ("initialization test", ("testConnectorInitialized", "testInit")),
    ("schema discovery test", ("testListObjects", "testSchemaDiscovery", "testSchema")),
    ("read data test", ("testReadData", "testRead")),
    ("cursor tracking test", ("testCursorTracking", "testIncremental")),
)


def has_test(source, prefixes) -> bool:
    """True if source declares a method whose name starts with one of prefixes."""
    return any(m.name.startswith(prefixes) for m in source.methods)


@predicate("CHK-201")
def record_processor_obtained(files: FileSet, settings: Settings) -> Verdict:
    if files.primary.has_call("getRecordProcessor", qualified=True):
        return ok("found .getRecordProcessor() call")
    return violation("missing .getRecordProcessor(); obtain the processor from the read request")


@predicate("CHK-202")
def records_processed(files: FileSet, settings: Settings) -> Verdict:
    found = files.first_with(lambda s: s.has_call("processRecord", qualified=True))
    if found is None:
        return violation("missing .processRecord() call for each record")
    if found is files.primary:
        return ok("found .processRecord() call")
    return ok(f"found .processRecord() in helper {found.name}")


@predicate("CHK-203")
def processing_completed(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if primary.has_call("completeProcessing", qualified=True):
        return ok("found .completeProcessing() call")
    if primary.has_call("getResult", qualified=True):
        return ok("found .getResult() call (equivalent to completeProcessing)")
    return violation("missing .completeProcessing() or .getResult(); the processing result is never collected")


@predicate("CHK-204")
def sync_state_response(files: FileSet, settings: Settings) -> Verdict:
    if not files.primary.mentions("SyncStateResponseBuilder"):
        return violation("missing SyncStateResponseBuilder usage")
    if not files.primary.has_call("fromProcessingResult"):
        return warn("SyncStateResponseBuilder used without fromProcessingResult(result, mode)")
    return ok("found SyncStateResponseBuilder.fromProcessingResult()")


@predicate("CHK-205")
def processor_not_closed(files: FileSet, settings: Settings) -> Verdict:
    m = re.search(r"\bprocessor\s*\.\s*close\s*\(", files.primary.bare)
    if m:
        line = files.primary.line_of(m.start())
        return violation(f"connector calls processor.close() (line {line}); the pipeline owns the processor")
    return ok("does not close the processor")


@predicate("CHK-206")
def init_response_setters(files: FileSet, settings: Settings) -> Verdict:
    wrong = [name for name in ("setStatus", "setMessage") if files.primary.has_call(name, qualified=True)]
    if wrong:
        return violation("DatasourceInitResponse has no " + " or ".join(f"{w}()" for w in wrong))
    return ok("no invalid init response setters")


@predicate("CHK-207")
def init_response_product(files: FileSet, settings: Settings) -> Verdict:
    missing = [
        name for name in ("setDatasourceProductName", "setDatasourceProductVersion")
        if not files.primary.has_call(name)
    ]
    if missing:
        return violation("init() response never calls " + ", ".join(f"{m}()" for m in missing))
    return ok("init() response sets product name and version")


@predicate("CHK-208")
def lifecycle_methods(files: FileSet, settings: Settings) -> Verdict:
    missing = [name for name in _LIFECYCLE_METHODS if not files.primary.declares(name)]
    if missing:
        return violation("missing method(s): " + ", ".join(f"{m}()" for m in missing))
    return ok("declares " + ", ".join(f"{m}()" for m in _LIFECYCLE_METHODS))


@predicate("CHK-209")
def descriptor_methods(files: FileSet, settings: Settings) -> Verdict:
    missing = [name for name in _DESCRIPTOR_METHODS if not files.primary.declares(name)]
    if missing:
        return violation("missing method(s): " + ", ".join(f"{m}()" for m in missing))
    return ok("declares getVersion() and getCapabilitiesConfig()")


@predicate("CHK-218")
def base_descriptor_methods(files: FileSet, settings: Settings) -> Verdict:
    verdict = descriptor_methods(files, settings)
    if verdict.severity is None:
        base = files.primary.superclass or "the base class"
        return violation(f"{verdict.message}; may be inherited from {base}")
    return verdict


@predicate("CHK-210")
def field_metadata_types(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if not re.search(r"\bnew\s+FieldMetadata\s*\(", primary.bare):
        return ok("no direct FieldMetadata construction")
    missing = [name for name in ("setOriginalDataType", "setCanonicalType") if not primary.has_call(name)]
    if missing:
        return violation("FieldMetadata built without " + ", ".join(f"{m}()" for m in missing))
    return ok("FieldMetadata sets original and canonical types")


@predicate("CHK-211")
def http_client_config(files: FileSet, settings: Settings) -> Verdict:
    if not files.primary.mentions("OkHttpClient", "HttpClient"):
        return ok("no HTTP client")
    if files.primary.has_call("getHttpClientConfig"):
        return ok("HTTP client uses the runtime context configuration")
    return violation("HTTP client does not use runtimeContext.getHttpClientConfig() (timeouts, proxy)")


@predicate("CHK-212")
def cursor_field_names(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if not primary.mentions("identifyCursorFields", "setCursorField", "SyncStateRequest"):
        return ok("no incremental sync features (full refresh only)")
    if primary.search(_HARDCODED_CURSOR):
        return violation("cursor field name appears hard-coded; search fields by priority instead")
    return ok("no hard-coded cursor field names")


@predicate("CHK-213")
def oauth_handling(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if not primary.mentions("OAuthConfig", "oauthConfig", "accessToken", "refreshToken"):
        return ok("no OAuth features")
    problems = []
    if re.search(r"\bOAuthConfig\s*\.\s*Builder\b", primary.bare) and not primary.has_call("withScopes"):
        problems.append("OAuthConfig.Builder without withScopes()")
    if not re.search(r"refresh\w*token|token\w*refresh|refreshing", primary.bare, re.IGNORECASE):
        problems.append("no token refresh logic")
    if problems:
        return violation("; ".join(problems))
    return ok("OAuth scopes and token refresh present")


@predicate("CHK-214")
def primary_keys(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    if primary.has_call("setPrimaryKey", qualified=True):
        if primary.has_call("setSourcePrimaryKey", qualified=True):
            return ok("sets setPrimaryKey() and setSourcePrimaryKey()")
        return violation("setPrimaryKey() without setSourcePrimaryKey(); both must be set")
    helper = files.first_with(lambda s: s.has_call("setPrimaryKey", qualified=True))
    if helper is None:
        return warn("no setPrimaryKey() call; merge and deduplication need primary keys")
    if helper.has_call("setSourcePrimaryKey", qualified=True):
        return ok(f"primary keys set in helper {helper.name}")
    return warn(f"{helper.name} calls setPrimaryKey() without setSourcePrimaryKey()")


@predicate("CHK-215")
def cursor_identification(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    inline = primary.search(_INLINE_CURSOR) is not None
    method = primary.method("identifyCursorFields")

    if method is not None:
        body = method.bare
        if re.search(r"\bset(?:Source)?CursorField\s*\(", body):
            unset = [f for f in _CURSOR_FLAGS if not re.search(rf"\b{f}\s*\(\s*true\s*\)", body)]
            if unset:
                return warn("identifyCursorFields() may not call " + ", ".join(f"{f}(true)" for f in unset))
            return ok("identifyCursorFields() sets all cursor flags")
        util = re.search(r"\b([A-Z]\w*(?:Util|Helper))\s*\.", body)
        if util:
            return ok(f"identifyCursorFields() delegates to {util.group(1)}")
        if inline:
            return ok("cursor fields set inline during schema building")
        if not body.strip() or re.search(r"\blog\s*\.|\breturn\s*;", body):
            return violation("identifyCursorFields() is a no-op; incremental sync is not supported")
        return warn("could not verify the identifyCursorFields() implementation")

    if inline:
        unset = [f for f in _CURSOR_FLAGS[1:] if not primary.search(rf"\b{f}\s*\(\s*true\s*\)")]
        if unset:
            return warn("inline cursor setting without " + ", ".join(f"{f}(true)" for f in unset))
        return ok("cursor fields set inline during schema building")
    return warn("no cursor field identification; connector is full-refresh only")


@predicate("CHK-216")
def cursor_identification_invoked(files: FileSet, settings: Settings) -> Verdict:
    primary = files.primary
    inline = files.first_with(lambda s: s.search(_INLINE_CURSOR) is not None) is not None
    if primary.declares("identifyCursorFields") or primary.has_call("identifyCursorFields"):
        calls = primary.calls("identifyCursorFields")
        if calls:
            return ok("identifyCursorFields() called at line(s) " + ", ".join(str(n) for n in calls[:3]))
        if inline:
            return ok("cursor fields set inline during schema building")
        return violation("identifyCursorFields() is declared but never called; no cursor fields are marked")
    if inline:
        return ok("cursor fields set inline during schema building")
    return warn("no cursor field identification; connector is full-refresh only")


@predicate("CHK-217")
def integration_tests(files: FileSet, settings: Settings) -> Verdict:
    it = files.integration_test
    if it is None:
        return violation("no integration test file (*ConnectorIT.java) under src/test")
    gaps = []
    if not it.search(r"@TestInstance\s*\([^)]*PER_CLASS"):
        gaps.append("@TestInstance(Lifecycle.PER_CLASS)")
    if not it.search(r"@TestMethodOrder\b"):
        gaps.append("@TestMethodOrder(OrderAnnotation.class)")
    gaps.extend(label for label, prefixes in _IT_TESTS if not has_test(it, prefixes))
    if gaps:
        return warn(f"{it.name} is missing: " + ", ".join(gaps))
    return ok(f"found {it.name} with lifecycle tests")
