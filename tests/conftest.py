"""Builders for throwaway platform checkouts under tmp_path."""
from __future__ import annotations

from pathlib import Path

import pytest

from connectorlint.core.models import FileSet, Module, SourceFile
from connectorlint.scanners.java import JavaSource
from connectorlint.scanners.locator import SourceLocator

SOURCE_DIR = "src/main/java/io/supaflow/connector"

PARENT_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>io.supaflow</groupId>
  <artifactId>supaflow-platform</artifactId>
  <version>1.0.0-SNAPSHOT</version>
  <packaging>pom</packaging>
  <modules>
{modules}
  </modules>
</project>
"""

MODULE_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <parent>
    <groupId>io.supaflow</groupId>
    <artifactId>supaflow-platform</artifactId>
    <version>1.0.0-SNAPSHOT</version>
  </parent>
  <artifactId>supaflow-connector-{name}</artifactId>
  <dependencies>
    <dependency>
      <groupId>io.supaflow</groupId>
      <artifactId>supaflow-connector-sdk</artifactId>
    </dependency>
    <dependency>
      <groupId>commons-io</groupId>
      <artifactId>commons-io</artifactId>
    </dependency>
  </dependencies>
  <build>
    <plugins>
      <plugin>
        <groupId>org.apache.maven.plugins</groupId>
        <artifactId>maven-shade-plugin</artifactId>
      </plugin>
    </plugins>
  </build>
</project>
"""

VERSION_PROPERTIES = "connector.version=${project.version}\n"

SOURCE_CONNECTOR = """\
package io.supaflow.connector.acme;

import java.util.ArrayList;
import java.util.List;
import java.util.Map;
import java.util.Set;
import java.util.function.BooleanSupplier;

public class AcmeConnector implements SupaflowConnector {

    private static final String TYPE = "ACME";
    private static final List<String> CURSOR_CANDIDATES = List.of("updated_at", "modified_date");

    @Property(label = "API Key", required = true, sensitive = true)
    public String apiKey;

    @Property(label = "Page Size", type = PropertyType.NUMERIC)
    public Integer pageSize;

    private ConnectorRuntimeContext runtimeContext;
    private BooleanSupplier cancellationSupplier = () -> false;
    private OkHttpClient httpClient;
    private AcmeClient client;

    @Override
    public String getType() {
        return TYPE;
    }

    @Override
    public String getName() {
        return "Acme";
    }

    @Override
    public String getVersion() {
        return VersionUtil.getVersion(getClass());
    }

    @Override
    public ConnectorCapabilitiesConfig getCapabilitiesConfig() {
        return ConnectorCapabilitiesConfig.builder()
            .capabilities(Set.of(ConnectorCapabilities.REPLICATION_SOURCE))
            .build();
    }

    @Override
    public void setRuntimeContext(ConnectorRuntimeContext context) {
        this.runtimeContext = context;
        this.cancellationSupplier = context.getCancellationSupplier();
        this.httpClient = HttpClients.create(context.getHttpClientConfig());
    }

    @Override
    public DatasourceInitResponse init() throws ConnectorException {
        client = new AcmeClient(httpClient, apiKey);
        DatasourceInitResponse response = new DatasourceInitResponse();
        response.setDatasourceProductName("Acme");
        response.setDatasourceProductVersion(client.apiVersion());
        return response;
    }

    @Override
    public List<ObjectMetadata> schema(SchemaRequest request) throws ConnectorException {
        List<ObjectMetadata> objects = new ArrayList<>();
        for (String name : client.listObjects()) {
            checkCancellation();
            ObjectMetadata object = new ObjectMetadata(name);
            FieldMetadata id = new FieldMetadata("id");
            id.setOriginalDataType("string");
            id.setCanonicalType(CanonicalType.STRING);
            id.setPrimaryKey(true);
            id.setSourcePrimaryKey(true);
            object.addField(id);
            identifyCursorFields(object);
            objects.add(object);
        }
        return objects;
    }

    private void identifyCursorFields(ObjectMetadata object) {
        for (FieldMetadata field : object.getFields()) {
            if (CURSOR_CANDIDATES.contains(field.getName())) {
                field.setCursorField(true);
                field.setSourceCursorField(true);
                field.setCursorFieldLocked(true);
                return;
            }
        }
    }

    @Override
    public ReadResponse read(ReadRequest request) throws ConnectorException {
        RecordProcessor processor = request.getRecordProcessor();
        for (Map<String, Object> record : client.fetch(request.getObject())) {
            checkCancellation();
            processor.processRecord(record, request.getFields());
        }
        ProcessingResult result = processor.completeProcessing();
        return ReadResponse.of(SyncStateResponseBuilder.fromProcessingResult(result, request.getSyncMode()));
    }

    @Override
    public void close() {
        client = null;
    }

    private void checkCancellation() throws ConnectorException {
        if (cancellationSupplier.getAsBoolean()) {
            throw new ConnectorException("Sync cancelled", ErrorType.CANCELLED);
        }
    }
}
"""

SOURCE_IT = """\
package io.supaflow.connector.acme;

@TestInstance(TestInstance.Lifecycle.PER_CLASS)
@TestMethodOrder(MethodOrderer.OrderAnnotation.class)
class AcmeConnectorIT {

    @Test
    @Order(1)
    void testConnectorInitialized() {
    }

    @Test
    @Order(2)
    void testListObjects() {
    }

    @Test
    @Order(3)
    void testReadData() {
    }

    @Test
    @Order(4)
    void testCursorTracking() {
    }
}
"""

JDBC_CONNECTOR = """\
package io.supaflow.connector.oracletm;

public class OracleTmConnector extends BaseJdbcConnector {

    @Property(label = "Host", required = true)
    public String host;

    @Override
    public String getType() {
        return "ORACLE_TM";
    }

    @Override
    public String getName() {
        return "Oracle TM";
    }

    @Override
    public String getVersion() {
        return VersionUtil.getVersion(getClass());
    }

    @Override
    public ConnectorCapabilitiesConfig getCapabilitiesConfig() {
        return ConnectorCapabilitiesConfig.builder()
            .capabilities(Set.of(ConnectorCapabilities.REPLICATION_SOURCE))
            .build();
    }

    @Override
    protected String getJdbcUrl() {
        return "jdbc:oracle:thin:@" + host;
    }
}
"""

WAREHOUSE_CONNECTOR = """\
package io.supaflow.connector.lakehouse;

public class LakehouseConnector implements SupaflowConnector {

    @Property(label = "Account")
    public String account;

    @Override
    public String getType() {
        return "LAKEHOUSE";
    }

    @Override
    public String getName() {
        return "Lakehouse";
    }

    @Override
    public ConnectorCapabilitiesConfig getCapabilitiesConfig() {
        return ConnectorCapabilitiesConfig.builder()
            .capabilities(Set.of(ConnectorCapabilities.REPLICATION_DESTINATION))
            .loadModes(Set.of(LoadMode.APPEND, LoadMode.MERGE))
            .destinationTableHandling(DestinationTableHandling.CREATE_IF_MISSING)
            .supportsStaging(true)
            .build();
    }

    @Override
    public ObjectMetadata mapToTargetObject(ObjectMetadata sourceObj, NamespaceRules namespaceRules) {
        ObjectMetadata target = new ObjectMetadata(namespaceRules.getTableName(sourceObj.getName()));
        target.setSchema(namespaceRules.getSchemaName());
        target.setCustomAttributes(sourceObj.getCustomAttributes());
        return target;
    }

    @Override
    public StageResponse stage(StageRequest request) throws ConnectorException {
        List<Path> files = listFiles(request.getLocalDataPath(), "success_part_*.csv");
        return StageResponse.of(files);
    }

    @Override
    public LoadResponse load(LoadRequest request) throws ConnectorException {
        ObjectMetadata metadata = request.getMetadataMapping().getTarget();
        switch (request.getLoadMode()) {
            case APPEND:
                execute("COPY INTO " + metadata.getName());
                break;
            case MERGE:
                execute("MERGE INTO " + metadata.getName());
                break;
        }
        request.getCallback().onProgress(metadata.getName());
        return LoadResponse.success();
    }

    private String createTable(ObjectMetadata metadata) {
        return "CREATE TABLE " + metadata.getName();
    }
}
"""

ACTIVATION_CONNECTOR = """\
package io.supaflow.connector.crm;

public class CrmConnector implements SupaflowConnector {

    @Property(label = "Instance Url")
    public String instanceUrl;

    @Override
    public String getType() {
        return "CRM";
    }

    @Override
    public String getName() {
        return "Crm";
    }

    @Override
    public ConnectorCapabilitiesConfig getCapabilitiesConfig() {
        return ConnectorCapabilitiesConfig.builder()
            .capabilities(Set.of(ConnectorCapabilities.REVERSE_ETL_DESTINATION))
            .build();
    }

    @Override
    public StageResponse stage(StageRequest request) {
        throw new UnsupportedOperationException("staging is not supported");
    }

    @Override
    public LoadResponse load(LoadRequest request) throws ConnectorException {
        String target = request.getMetadata().getActivationTarget();
        List<Map<String, String>> rows = readCsv(request.getLocalDataPath());
        for (FieldMetadata field : request.getMetadata().getFields()) {
            mapping.put(field.getName(), field.getActivationTargetField());
        }
        return LoadResponse.success();
    }
}
"""

UNDECLARED_CONNECTOR = """\
package io.supaflow.connector.blank;

public class BlankConnector implements SupaflowConnector {

    @Override
    public String getType() {
        return "BLANK";
    }

    @Override
    public String getName() {
        return "Blank";
    }
}
"""


def make_platform(root: Path, modules: list[str] | None = None) -> Path:
    """Write a parent pom registering modules (connector names)."""
    root.mkdir(parents=True, exist_ok=True)
    entries = "\n".join(
        f"    <module>connectors/supaflow-connector-{name}</module>" for name in (modules or [])
    )
    (root / "pom.xml").write_text(PARENT_POM.format(modules=entries))
    return root


def make_module(
    root: Path,
    name: str,
    connector: str,
    class_name: str,
    *,
    integration_test: str | None = None,
    helpers: dict[str, str] | None = None,
    pom: str | None = MODULE_POM,
    version_properties: str | None = VERSION_PROPERTIES,
    register: bool = True,
) -> Module:
    """Write a connector module under root and return its Module."""
    if not (root / "pom.xml").exists():
        make_platform(root, [name] if register else [])
    module_dir = root / "connectors" / f"supaflow-connector-{name}"
    package = name.replace("-", "")
    source_dir = module_dir / SOURCE_DIR / package
    source_dir.mkdir(parents=True)
    (source_dir / f"{class_name}.java").write_text(connector)
    for helper_name, text in (helpers or {}).items():
        (source_dir / helper_name).write_text(text)
    if integration_test is not None:
        test_dir = module_dir / "src/test/java/io/supaflow/connector" / package
        test_dir.mkdir(parents=True)
        (test_dir / f"{class_name}IT.java").write_text(integration_test)
    if pom is not None:
        (module_dir / "pom.xml").write_text(pom.format(name=name))
    if version_properties is not None:
        resources = module_dir / "src/main/resources"
        resources.mkdir(parents=True)
        (resources / "version.properties").write_text(version_properties)
    return Module(root=root, name=name)


def java(text: str, name: str = "Sample.java") -> JavaSource:
    return JavaSource(Path(name), text)


def fileset(
    primary: str,
    *,
    root: Path = Path("/nonexistent"),
    name: str = "acme",
    helpers: dict[str, str] | None = None,
    integration_test: str | None = None,
    manifest: str | None = None,
    resource: str | None = None,
    parent_manifest: str | None = None,
) -> FileSet:
    """FileSet built straight from text, for exercising single rules."""
    def optional(text, filename):
        return SourceFile(root / filename, text) if text is not None else None

    return FileSet(
        module=Module(root=root, name=name),
        primary=java(primary, "AcmeConnector.java"),
        helpers=tuple(java(text, n) for n, text in sorted((helpers or {}).items())),
        integration_test=java(integration_test, "AcmeConnectorIT.java") if integration_test is not None else None,
        manifest=optional(manifest, "module-pom.xml"),
        resource=optional(resource, "version.properties"),
        parent_manifest=optional(parent_manifest, "pom.xml"),
    )


@pytest.fixture
def platform(tmp_path):
    return tmp_path / "supaflow-platform"


@pytest.fixture
def source_module(platform):
    return make_module(platform, "acme", SOURCE_CONNECTOR, "AcmeConnector", integration_test=SOURCE_IT)


@pytest.fixture
def source_files(source_module):
    return SourceLocator().locate(source_module)


@pytest.fixture
def jdbc_files(platform):
    module = make_module(platform, "oracle-tm", JDBC_CONNECTOR, "OracleTmConnector")
    return SourceLocator().locate(module)


@pytest.fixture
def warehouse_files(platform):
    module = make_module(platform, "lakehouse", WAREHOUSE_CONNECTOR, "LakehouseConnector")
    return SourceLocator().locate(module)


@pytest.fixture
def activation_files(platform):
    module = make_module(platform, "crm", ACTIVATION_CONNECTOR, "CrmConnector")
    return SourceLocator().locate(module)


@pytest.fixture
def undeclared_files(platform):
    module = make_module(platform, "blank", UNDECLARED_CONNECTOR, "BlankConnector")
    return SourceLocator().locate(module)
