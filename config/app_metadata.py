APP_TITLE = "Coral Ontogeny Explorer"
APP_SUBTITLE = "Mo'orea LTER back reef transects"

GENUS_NAMES = {
    "Poc": "Pocillopora",
    "Por": "Porites",
    "Acr": "Acropora",
    "Mil": "Millepora",
}

SIZE_METRIC_LABELS = {
    "geometric_mean_diam": "Geometric mean diameter (cm)",
    "volume_proxy": "Volume proxy (cm³)",
    "diam1": "Maximum diameter (cm)",
}

POPULATION_METRIC_LABELS = {
    "count": "Live colonies",
    "recruits": "Recruits",
    "deaths": "Deaths",
}

COLOR_BY_LABELS = {
    "genus": "Genus",
    "fate": "Fate",
    "size": "Size",
}

ANIMATION_SPEEDS = [0.5, 1.0, 2.0, 4.0]
HISTOGRAM_BINS = 20

MISSING_CODES = {
    "Na": "Not applicable (colony not present that year)",
    "UK": "Unknown (not measured)",
    "D": "Dead at time of measurement",
}

VARIABLES = {
    "coral_id": "Unique colony identifier",
    "year": "Survey year",
    "transect": "Transect code (T01, T02)",
    "genus": "Genus code (Poc, Por, Acr, Mil)",
    "x": "Position along transect",
    "y": "Position across transect",
    "diam1": "Maximum colony diameter",
    "diam2": "Diameter perpendicular to diam1",
    "height": "Colony height",
    "geom_mean_diam": "sqrt(diam1 * diam2)",
    "volume_proxy": "diam1 * diam2 * height / 6",
    "fate": "Demographic fate (growth, death, recruitment, fission, fusion)",
}

UNITS = {
    "x": "m",
    "y": "cm",
    "diam1": "cm",
    "diam2": "cm",
    "height": "cm",
    "geom_mean_diam": "cm",
    "volume_proxy": "cm³",
}

MERMAID_DIAGRAMS = {
    "Data flow": """
flowchart LR
  JSON --> RecordParser
  RecordParser --> ColonyAggregator
  ColonyAggregator --> Statistics
  ColonyAggregator --> ViewState
  ViewState --> TransectMap
  AnimationDriver --> ViewState
""",
}
