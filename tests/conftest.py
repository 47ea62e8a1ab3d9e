"""Pytest path setup for src-layout imports and .bacpac fixtures."""

from pathlib import Path
import sys
import zipfile

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PYTHON = REPO_ROOT / "src" / "python"

if str(SRC_PYTHON) not in sys.path:
    sys.path.insert(0, str(SRC_PYTHON))


DAC_NS = "http://schemas.microsoft.com/sqlserver/dac/Serialization/2012/02"

MODEL_XML = f"""<?xml version="1.0" encoding="utf-8"?>
<DataSchemaModel FileFormatVersion="1.2" SchemaVersion="2.9" xmlns="{DAC_NS}">
\t<Model>
\t\t<Element Type="SqlDatabaseOptions">
\t\t\t<Property Name="Collation" Value="SQL_Latin1_General_CP1_CI_AS"/>
\t\t</Element>
\t\t<Element Type="SqlFilegroup" Name="[XTP_FG]">
\t\t\t<Property Name="ContainsMemoryOptimizedData" Value="True"/>
\t\t</Element>
\t\t<AlwaysOnAvailabilityGroup Name="ag1">
\t\t\t<Replica/>
\t\t</AlwaysOnAvailabilityGroup>
\t\t<Element Type="SqlTable" Name="[dbo].[Customers]">
\t\t\t<Property Name="IsAnsiNullsOn" Value="True"/>
\t\t</Element>
\t</Model>
</DataSchemaModel>
"""

CLEAN_MODEL_XML = f"""<?xml version="1.0" encoding="utf-8"?>
<DataSchemaModel FileFormatVersion="1.2" SchemaVersion="2.9" xmlns="{DAC_NS}">
\t<Model>
\t\t<Element Type="SqlTable" Name="[dbo].[Customers]">
\t\t\t<Property Name="IsAnsiNullsOn" Value="True"/>
\t\t</Element>
\t</Model>
</DataSchemaModel>
"""

ORIGIN_XML = f"""<?xml version="1.0" encoding="utf-8"?>
<DacOrigin xmlns="{DAC_NS}">
  <PackageProperties>
    <Version>3.1.0.0</Version>
    <ContainsExportedData>true</ContainsExportedData>
  </PackageProperties>
  <Checksums>
    <Checksum Uri="/model.xml">0000000000000000000000000000000000000000000000000000000000000000</Checksum>
  </Checksums>
</DacOrigin>
"""

ORIGIN_XML_NO_CHECKSUM = f"""<?xml version="1.0" encoding="utf-8"?>
<DacOrigin xmlns="{DAC_NS}">
  <PackageProperties>
    <Version>3.1.0.0</Version>
  </PackageProperties>
</DacOrigin>
"""

DATA_ENTRY = "Data/dbo.Customers/TableData-000-00000.BCP"
DATA_BYTES = bytes(range(256)) * 8


def write_bacpac(path: Path, entries) -> Path:
    """Write a zip package from (name, str|bytes) pairs, in order."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zout:
        for name, content in entries:
            data = content.encode("utf-8") if isinstance(content, str) else content
            zout.writestr(name, data)
    return path


@pytest.fixture
def make_bacpac(tmp_path):
    """Factory building a .bacpac in a temp directory."""
    def _make(entries=None, name="sample.bacpac"):
        if entries is None:
            entries = [
                ("model.xml", MODEL_XML),
                ("origin.xml", ORIGIN_XML),
                (DATA_ENTRY, DATA_BYTES),
                ("[Content_Types].xml", "<Types/>"),
            ]
        pkg_dir = tmp_path / "pkg"
        pkg_dir.mkdir(exist_ok=True)
        return write_bacpac(pkg_dir / name, entries)
    return _make


def read_entries(path: Path):
    with zipfile.ZipFile(path, "r") as zin:
        return {info.filename: zin.read(info) for info in zin.infolist()}
