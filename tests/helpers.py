from coral.colonies import aggregate_colonies
from coral.records import observations_from, parse_records


def make_record(**overrides):
    record = {
        "coral_id": 1,
        "year": 2013,
        "transect": "T01",
        "genus": "Poc",
        "genus_full": "Pocillopora",
        "x": 1.0,
        "y": 50.0,
        "z": 0.0,
        "diam1": 10,
        "diam2": 10,
        "height": 10,
        "fate": "Growth",
        "is_recruit": False,
        "died": False,
    }
    record.update(overrides)
    return record


def build_colonies(records, metric="geometric_mean_diam"):
    return aggregate_colonies(observations_from(parse_records(records)), metric)
