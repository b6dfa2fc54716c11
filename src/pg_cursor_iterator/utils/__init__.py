from .general import setup_logger, to_seconds
from .dataframes import iter_dataframes, slot_as_record
