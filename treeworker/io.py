import json
from typing import Any

import numpy as np


class WorkerJSONEncoder(json.JSONEncoder):
    def default(self, o: Any):
        # numpy scalars and arrays can leak out of derived indexes
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.bool_):
            return bool(o)
        if isinstance(o, np.ndarray):
            return o.tolist()

        # Sets (e.g. distinct values) serialize as sorted lists
        if isinstance(o, (set, frozenset)):
            return sorted(o, key=str)

        return super().default(o)


def dumps(payload: Any) -> str:
    return json.dumps(payload, cls=WorkerJSONEncoder)
