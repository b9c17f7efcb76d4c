import pytest

from granule_watch.granule.accumulator import GranuleSnapshot
from granule_watch.schemas import ParamConfig, UserConfig, resolve_config
from granule_watch.setup_directories import setup_output_directories


def h5dump_xml(*values, attribute="Ascending/Descending_Indicator"):
    """Minimal ``h5dump -x -A`` output carrying one gate attribute per value."""
    attributes = "".join(
        f"""
      <hdf5:Attribute Name="{attribute}">
        <hdf5:Dataspace><hdf5:SimpleDataspace Ndims="1"/></hdf5:Dataspace>
        <hdf5:Data>
          <hdf5:DataFromFile>
            {value}
          </hdf5:DataFromFile>
        </hdf5:Data>
      </hdf5:Attribute>"""
        for value in values
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<hdf5:HDF5-File xmlns:hdf5="http://hdfgroup.org/HDF5/XML/schema/HDF5-File.xsd">
  <hdf5:RootGroup OBJ-XID="xid_96" H5Path="/">
    <hdf5:Attribute Name="Mission_Name">
      <hdf5:Data><hdf5:DataFromFile>"S-NPP"</hdf5:DataFromFile></hdf5:Data>
    </hdf5:Attribute>
    <hdf5:Group Name="Data_Products" H5Path="/Data_Products">
      <hdf5:Dataset Name="VIIRS-M10-SDR_Gran_0">{attributes}
      </hdf5:Dataset>
    </hdf5:Group>
  </hdf5:RootGroup>
</hdf5:HDF5-File>
"""


@pytest.fixture
def make_h5dump_xml():
    return h5dump_xml


@pytest.fixture
def pipeline_config(temp_dir):
    """InternalConfig writing products into the temp directory."""
    user = UserConfig(watch_dir=str(temp_dir / "incoming"), output_dir=str(temp_dir / "out"))
    return resolve_config(ParamConfig(), user, None)


@pytest.fixture
def pipeline_output_dirs(pipeline_config):
    """Output directories for pipeline tests."""
    return setup_output_directories(pipeline_config.output_dir)


@pytest.fixture
def snapshot(temp_dir, granule_id, make_name):
    """Completed granule whose trigger file is an SVM10 path."""
    return GranuleSnapshot(
        id=granule_id,
        satisfied_types=frozenset({"SVM10"}),
        trigger_file_path=str(temp_dir / make_name("SVM10")),
    )
