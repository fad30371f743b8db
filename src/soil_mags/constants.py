from pathlib import Path
from typing import Dict, List, Tuple

# ==================================================================================== #
# PROGRESS BAR
# ==================================================================================== #
# See supported colors at: https://www.w3schools.com/colors/colors_x11.asp

# Total character width of the progress bar text
DEFAULT_PROGRESS_TEXT_N: int = 45
# Color of the progress bar description text
DEFAULT_DESCRIPTION_STYLE: str = "white"
# Width of the progress bar
DEFAULT_BAR_WIDTH: int = 30
# Color of the filled/complete portion of the progress bar
DEFAULT_BAR_COLUMN_COMPLETE_STYLE: str = "honeydew2"
# Color used when the progress bar is finished
DEFAULT_FINISHED_STYLE: str = "dark_cyan"
# Color of the "X of Y complete" text (e.g., "2 of 3")
DEFAULT_M_OF_N_COMPLETE_STYLE: str = "honeydew2"
# Color of the time elapsed display
DEFAULT_TIME_ELAPSED_STYLE: str = "light_sky_blue1"

# ==================================================================================== #
# SETTINGS
# ==================================================================================== #
# Go up two levels
DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "references" / "config.yaml"
LOGGER_NAME = 'soil_mags'

# Key used for records (and groups) without a value
ABSENT = None

# ==================================================================================== #
# TAXONOMY
# ==================================================================================== #
RANKS: Tuple[str, ...] = (
    'domain', 'phylum', 'class', 'order', 'family', 'genus', 'species'
)
RANK_PREFIXES: Dict[str, str] = {
    'domain': 'd__',
    'phylum': 'p__',
    'class': 'c__',
    'order': 'o__',
    'family': 'f__',
    'genus': 'g__',
    'species': 's__',
}
LINEAGE_SEPARATOR = ';'

# ==================================================================================== #
# SAMPLE NAMES
# ==================================================================================== #
# e.g. "Terrestrial soil microbial communities from Toolik Field Station, Alaska, USA
#       - TOOL_001-O-20170718-COMP"
SAMPLE_NAME_BOILERPLATE = "Terrestrial soil microbial communities from "
SITE_SEPARATOR = " - "
SAMPLE_NAME_SUFFIX_PATTERN = r"-COMP$"
SITE_ID_SEPARATOR = "_"
SAMPLE_FIELD_SEPARATOR = "-"
SAMPLE_FIELDS: Tuple[str, ...] = ('subplot', 'layer', 'collection_date')

COMBINED_ASSEMBLY_LABEL = "Combined Assembly"
ASSEMBLY_TYPE_INDIVIDUAL = "Individual"
ASSEMBLY_TYPE_COMBINED = "Combined"

CHEMISTRY_KEY_SUFFIX = "-COMP"

# ==================================================================================== #
# SOURCES
# ==================================================================================== #
SOURCE_ASSEMBLY = 'assembly'
SOURCE_METAGENOME = 'metagenome'
SOURCE_CHEMISTRY = 'chemistry'
SOURCES: Tuple[str, ...] = (SOURCE_ASSEMBLY, SOURCE_METAGENOME, SOURCE_CHEMISTRY)

JOIN_KEY = 'sample_name'
CHEMISTRY_JOIN_KEY = 'genomics_sample_id'

# Raw header -> normalized column name
ASSEMBLY_COLUMN_MAP: Dict[str, str] = {
    'Genome Name / Sample Name': 'genome_name',
    'Bin ID': 'bin_id',
    'GTDB Taxonomy Lineage': 'taxonomy_lineage',
    'Bin Completeness': 'bin_completeness',
    'Bin Contamination': 'bin_contamination',
    'Total Number of Bases': 'total_bases',
    'Gene Count': 'gene_count',
    'Bin Quality': 'bin_quality',
    'IMG Genome ID': 'img_genome_id',
}
ASSEMBLY_REQUIRED_COLUMNS: List[str] = [
    'genome_name', 'bin_id', 'taxonomy_lineage',
    'bin_completeness', 'total_bases', 'gene_count',
]
ASSEMBLY_NUMERIC_COLUMNS: List[str] = [
    'bin_completeness', 'bin_contamination', 'total_bases', 'gene_count'
]
ASSEMBLY_DROP_COLUMNS: List[str] = [
    'Bin Methods', 'Bin Lineage', 'GTDB-Tk Version', 'GTDB-Tk Taxonomy Lineage Version',
    'Is Public', 'Study Name',
]

METAGENOME_COLUMN_MAP: Dict[str, str] = {
    'Genome Name': 'genome_name',
    'IMG Genome ID': 'img_genome_id',
    'GOLD Analysis Project ID': 'gold_analysis_project_id',
    'Sequencing Center': 'sequencing_center',
    'Gene Count': 'gene_count',
}
METAGENOME_REQUIRED_COLUMNS: List[str] = ['genome_name']
METAGENOME_NUMERIC_COLUMNS: List[str] = ['gene_count']
METAGENOME_DROP_COLUMNS: List[str] = [
    'Domain', 'Sequencing Status', 'Study Name', 'Is Public', 'JGI Data Utilization Status',
]
# Rows whose genome name contains any of these are dropped
METAGENOME_NOISE_PATTERNS: List[str] = ["re-annotation", "WREF_070"]

CHEMISTRY_COLUMN_MAP: Dict[str, str] = {
    'genomicsSampleID': 'genomics_sample_id',
    'siteID': 'site_id',
    'plotID': 'plot_id',
    'soilInWaterpH': 'ph_water',
    'soilInCaClpH': 'ph_cacl2',
    'soilTemp': 'soil_temp',
    'elevation': 'elevation',
    'nlcdClass': 'nlcd_class',
    'ecosystemSubtype': 'ecosystem_subtype',
    'horizon': 'layer',
}
CHEMISTRY_REQUIRED_COLUMNS: List[str] = ['genomics_sample_id']
CHEMISTRY_NUMERIC_COLUMNS: List[str] = ['ph_water', 'ph_cacl2', 'soil_temp', 'elevation']
CHEMISTRY_DROP_COLUMNS: List[str] = ['uid', 'domainID', 'namedLocation', 'publicationDate', 'release']

# ==================================================================================== #
# AGGREGATION
# ==================================================================================== #
DEFAULT_NOVELTY_RANKS: List[str] = ['order', 'family', 'genus']
DEFAULT_GROUP_FIELDS: List[str] = ['site', 'phylum', 'class', 'assembly_type']
DEFAULT_SUMMARY_FIELDS: List[str] = [
    'total_bases', 'bin_completeness', 'ph_water', 'ph_cacl2', 'soil_temp', 'elevation'
]
DEFAULT_TREE_LABEL_FIELD = 'bin_id'
