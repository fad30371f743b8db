from pathlib import Path

import pandas as pd
import pytest

TOOLIK = "Terrestrial soil microbial communities from Toolik Field Station, Alaska, USA"
HARVARD = "Terrestrial soil microbial communities from Harvard Forest, Massachusetts, USA"
NIWOT = "Terrestrial soil microbial communities from Niwot Ridge, Colorado, USA"
WIND_RIVER = "Terrestrial soil microbial communities from Wind River, Washington, USA"

ASSEMBLY_ROWS = [
    {
        "Genome Name / Sample Name": f"{TOOLIK} - TOOL_001-O-20170718-COMP",
        "Bin ID": "TOOL_bin1",
        "GTDB Taxonomy Lineage": (
            "d__Bacteria;p__Pseudomonadota;c__Gammaproteobacteria;"
            "o__Burkholderiales;f__;g__;s__"
        ),
        "Bin Completeness": "91.2",
        "Total Number of Bases": "2500000",
        "Gene Count": "2400",
        "Bin Methods": "metabat2",
    },
    {
        "Genome Name / Sample Name": f"{TOOLIK} - TOOL_001-O-20170718-COMP",
        "Bin ID": "TOOL_bin2",
        "GTDB Taxonomy Lineage": (
            "d__Bacteria;p__Acidobacteriota;c__Terriglobia;o__Terriglobales;"
            "f__Acidobacteriaceae;g__Granulicella;s__"
        ),
        "Bin Completeness": "85.0",
        "Total Number of Bases": "3100000",
        "Gene Count": "2900",
        "Bin Methods": "metabat2",
    },
    {
        "Genome Name / Sample Name": f"{HARVARD} - HARV_033-M-20180709-COMP",
        "Bin ID": "HARV_bin1",
        "GTDB Taxonomy Lineage": (
            "d__Bacteria;p__Actinomycetota;c__Actinomycetia;o__Streptomycetales;"
            "f__Streptomycetaceae;g__Streptomyces;s__Streptomyces sp001"
        ),
        "Bin Completeness": "97.5",
        "Total Number of Bases": "7800000",
        "Gene Count": "7100",
        "Bin Methods": "metabat2",
    },
    {
        "Genome Name / Sample Name": f"{HARVARD} - Combined Assembly",
        "Bin ID": "HARV_bin9",
        "GTDB Taxonomy Lineage": (
            "d__Archaea;p__Thermoproteota;c__Nitrososphaeria;o__Nitrososphaerales;"
            "f__Nitrosophaeraceae;g__;s__"
        ),
        "Bin Completeness": "60.1",
        "Total Number of Bases": "1200000",
        "Gene Count": "1300",
        "Bin Methods": "metabat2",
    },
]

METAGENOME_ROWS = [
    {"Genome Name": f"{TOOLIK} - TOOL_001-O-20170718-COMP",
     "IMG Genome ID": "3300000001", "Sequencing Status": "Permanent Draft"},
    {"Genome Name": f"{HARVARD} - HARV_033-M-20180709-COMP",
     "IMG Genome ID": "3300000002", "Sequencing Status": "Permanent Draft"},
    {"Genome Name": f"{HARVARD} - HARV_033-M-20180709-COMP re-annotation",
     "IMG Genome ID": "3300000003", "Sequencing Status": "Permanent Draft"},
    {"Genome Name": f"{WIND_RIVER} - WREF_070-O-20190601-COMP",
     "IMG Genome ID": "3300000004", "Sequencing Status": "Permanent Draft"},
    {"Genome Name": f"{NIWOT} - NIWO_005-O-20190710-COMP",
     "IMG Genome ID": "3300000005", "Sequencing Status": "Permanent Draft"},
]

CHEMISTRY_ROWS = [
    {"genomicsSampleID": "TOOL_001-O-20170718-COMP", "siteID": "TOOL", "plotID": "TOOL_001",
     "soilInWaterpH": "5.1", "soilInCaClpH": "4.6", "soilTemp": "8.2", "elevation": "760",
     "nlcdClass": "shrubScrub", "ecosystemSubtype": "tundra", "horizon": "O", "uid": "u1"},
    {"genomicsSampleID": "HARV_033-M-20180709-COMP", "siteID": "HARV", "plotID": "HARV_033",
     "soilInWaterpH": "4.2", "soilInCaClpH": "3.8", "soilTemp": "17.5", "elevation": "348",
     "nlcdClass": "deciduousForest", "ecosystemSubtype": "temperate forest", "horizon": "M",
     "uid": "u2"},
    {"genomicsSampleID": "ONAQ_010-M-20190601-COMP", "siteID": "ONAQ", "plotID": "ONAQ_010",
     "soilInWaterpH": "8.1", "soilInCaClpH": "7.6", "soilTemp": "", "elevation": "1662",
     "nlcdClass": "shrubScrub", "ecosystemSubtype": "desert", "horizon": "M", "uid": "u3"},
]

TREE_NEWICK = (
    "((TOOL_bin1:0.1,TOOL_bin2:0.2)0.95:0.05,"
    "(HARV_bin1:0.3,(OTHER_bin1:0.4,OTHER_bin2:0.1)0.80:0.2)0.99:0.1);"
)


class InMemoryReader:
    """TableReader serving DataFrames by location name."""

    def __init__(self, tables):
        self.tables = tables
        self.calls = []

    def read(self, location, sep):
        self.calls.append((location, sep))
        return self.tables[location].copy()


@pytest.fixture
def assembly_raw():
    return pd.DataFrame(ASSEMBLY_ROWS)


@pytest.fixture
def metagenome_raw():
    return pd.DataFrame(METAGENOME_ROWS)


@pytest.fixture
def chemistry_raw():
    return pd.DataFrame(CHEMISTRY_ROWS)


@pytest.fixture
def source_files(tmp_path, assembly_raw, metagenome_raw, chemistry_raw) -> dict:
    paths = {
        "assembly": tmp_path / "mag_assembly_metadata.csv",
        "metagenome": tmp_path / "metagenome_metadata.tsv",
        "chemistry": tmp_path / "soil_chemistry.tsv",
        "tree": tmp_path / "gtdbtk.tree",
    }
    assembly_raw.to_csv(paths["assembly"], index=False)
    metagenome_raw.to_csv(paths["metagenome"], sep="\t", index=False)
    chemistry_raw.to_csv(paths["chemistry"], sep="\t", index=False)
    Path(paths["tree"]).write_text(TREE_NEWICK + "\n")
    return paths


@pytest.fixture
def sources(source_files):
    from soil_mags.data.load import load_sources

    return load_sources(
        {k: v for k, v in source_files.items() if k != "tree"}, concurrent=False
    )


@pytest.fixture
def combined(sources):
    from soil_mags.data.join import join

    return join(sources.assembly, sources.metagenome, sources.chemistry)


@pytest.fixture
def records():
    """Small record set with some absent ranks and values."""
    return pd.DataFrame({
        "bin_id": ["b1", "b2", "b3", "b4", "b5"],
        "site": ["Toolik Field Station", "Toolik Field Station", "Harvard Forest",
                 "Harvard Forest", None],
        "assembly_type": ["Individual", "Individual", "Individual", "Combined",
                          "Individual"],
        "class": ["Gammaproteobacteria", "Terriglobia", "Gammaproteobacteria (A)",
                  None, "Actinomycetia"],
        "order": ["Burkholderiales", "Terriglobales", "Pseudomonadales", None,
                  "Streptomycetales"],
        "family": [None, "Acidobacteriaceae", "Pseudomonadaceae", None,
                   "Streptomycetaceae"],
        "genus": [None, "Granulicella", None, None, "Streptomyces"],
        "total_bases": [2.5e6, 3.1e6, 4.0e6, None, 7.8e6],
    })
