# config.py
"""
Configuration settings for the lipid scrambling analysis.

Distances are in Angstrom and times in picoseconds unless stated otherwise,
matching the units MDAnalysis reports.
"""

# --- Global Version ---
Analysis_version = "1.0.0"
# ---------------------

# --- Lipid Selection Parameters ---
# Default selection of lipid head identifiers (one atom per lipid)
DEFAULT_HEAD_SELECTION = "name PO4"

# File with user-defined lipid residue names, read from the working directory if present
USER_LIPIDS_FILE = "lipids.txt"

# Label of the aggregate row/column reported when two or more lipid types are present
ALL_LIPIDS_LABEL = "TOTAL"

# Residue names recognized as lipids (Martini lipidome)
DEFAULT_LIPID_NAMES = [
    "DAPC", "DBPC", "DFPC", "DGPC", "DIPC", "DLPC", "DNPC", "DOPC", "DPPC", "DRPC",
    "DTPC", "DVPC", "DXPC", "DYPC", "LPPC", "PAPC", "PEPC", "PGPC", "PIPC", "POPC",
    "PRPC", "PUPC", "DAPE", "DBPE", "DFPE", "DGPE", "DIPE", "DLPE", "DNPE", "DOPE",
    "DPPE", "DRPE", "DTPE", "DUPE", "DVPE", "DXPE", "DYPE", "LPPE", "PAPE", "PGPE",
    "PIPE", "POPE", "PQPE", "PRPE", "PUPE", "DAPS", "DBPS", "DFPS", "DGPS", "DIPS",
    "DLPS", "DNPS", "DOPS", "DPPS", "DRPS", "DTPS", "DUPS", "DVPS", "DXPS", "DYPS",
    "LPPS", "PAPS", "PGPS", "PIPS", "POPS", "PQPS", "PRPS", "PUPS", "DAPG", "DBPG",
    "DFPG", "DGPG", "DIPG", "DLPG", "DNPG", "DOPG", "DPPG", "DRPG", "DTPG", "DVPG",
    "DXPG", "DYPG", "JFPG", "JPPG", "LPPG", "OPPG", "PAPG", "PGPG", "PIPG", "POPG",
    "PRPG", "DAPA", "DBPA", "DFPA", "DGPA", "DIPA", "DLPA", "DNPA", "DOPA", "DPPA",
    "DRPA", "DTPA", "DVPA", "DXPA", "DYPA", "LPPA", "PAPA", "PGPA", "PIPA", "POPA",
    "PRPA", "PUPA", "DPP1", "DPP2", "DPPI", "PAPI", "PIPI", "POP1", "POP2", "POP3",
    "POPI", "PUPI", "PVP1", "PVP2", "PVP3", "PVPI", "PADG", "PIDG", "PODG", "PUDG",
    "PVDG", "TOG", "APC", "CPC", "IPC", "LPC", "OPC", "PPC", "TPC", "UPC",
    "VPC", "BNSM", "DBSM", "DPSM", "DXSM", "PGSM", "PNSM", "POSM", "PVSM", "XNSM",
    "DPCE", "DXCE", "PNCE", "XNCE", "DBG1", "DPG1", "DPG3", "DPGS", "DXG1", "DXG3",
    "PNG1", "PNG3", "XNG1", "XNG3", "DFGG", "DFMG", "DPGG", "DPMG", "DPSG", "FPGG",
    "FPMG", "FPSG", "OPGG", "OPMG", "OPSG", "CHOA", "CHOL", "CHYO", "BOG", "DDM",
    "DPC", "EO5", "SDS", "BOLA", "BOLB", "CDL0", "CDL1", "CDL2", "CDL", "DBG3",
    "ERGO", "HBHT", "HDPT", "HHOP", "HOPR", "ACA", "ACN", "BCA", "BCN", "LCA",
    "LCN", "PCA", "PCN", "UCA", "UCN", "XCA", "XCN", "RAMP", "REMP", "OANT",
]

# --- Frame Selection Parameters ---
# Time interval (ns) between analyzed frames for the composition analysis
COMPOSITION_DT_NS = 1.0
# Time interval (ns) between analyzed frames for the scrambling rate analysis
RATE_DT_NS = 10.0
# Time interval (ns) between analyzed frames for the flip-flop analysis (fixed)
FLIPFLOP_DT_NS = 1.0
# Largest allowed time gap (ps) between consecutive frames seen by the flip-flop tracker
FLIPFLOP_MAX_FRAME_SPACING_PS = 1000.0

# --- Flip-Flop Parameters ---
# How far (Angstrom) past the membrane center a head must move to count as leaflet core
FLIPFLOP_SPATIAL_LIMIT = 15.0
# How many consecutive analyzed frames (ns) a head must stay in a leaflet core to confirm it
FLIPFLOP_TEMPORAL_LIMIT = 10

# --- Bilayer Geometry ---
# Index of the bilayer normal axis (0=x, 1=y, 2=z)
MEMBRANE_NORMAL_AXIS = 2
