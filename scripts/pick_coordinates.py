"""
Record drag start/end coordinates into a config file.

Hover the start of the trendline and press Ctrl+C, then hover the end and
press Ctrl+C again. The y of the start point is used for the whole line.

    python scripts/pick_coordinates.py trendline.json
    trendline-drawer --config trendline.json
"""
from pathlib import Path
import json
import sys
import time

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from trendline_drawer.system.drivers.pointer import PointerDriver


def record(pointer, label):
    print(f"Move your mouse to the {label} and press Ctrl+C to record the position.")
    try:
        while True:
            x, y = pointer.get_position()
            print(f"Current mouse position: ({x}, {y})    ", end='\r')
            time.sleep(0.1)
    except KeyboardInterrupt:
        x, y = pointer.get_position()
        print(f"\nRecorded {label}: ({x}, {y})")
        return x, y


out_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("trendline.json")

pointer = PointerDriver()
pointer.initialize()
start_x, y = record(pointer, "line START")
end_x, _ = record(pointer, "line END")

data = json.loads(out_path.read_text(encoding="utf-8")) if out_path.exists() else {}
data.setdefault("drag", {}).update({"start_x": start_x, "end_x": end_x, "y": y})
out_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
print(f"Saved to {out_path}")
