"""Quick runner to exercise the full drag flow without touching the mouse.

Creates a DrawRunner with a virtual pointer and a short drag (200 px over
4 seconds), nudges the virtual pointer mid-drag to trigger the interference
handler, and lets the automatic restart finish the line.

Run from the project root:
    python scripts/run_simulate.py
"""
from pathlib import Path
import logging
import sys

# Ensure src on path
SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from trendline_drawer.system.config import AppConfig, DragConfig, MonitorConfig, TriggerConfig
from trendline_drawer.system.core.runner import DrawRunner
from trendline_drawer.system.drivers.keyboard import NullSignalSource
from trendline_drawer.system.drivers.pointer import PointerDriver

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-7s %(name)s: %(message)s")

config = AppConfig(
    drag=DragConfig(start_x=700, end_x=500, y=400, total_duration_ms=4000, step=1.0),
    monitor=MonitorConfig(restart_delay_ms=1000),
    triggers=TriggerConfig(startup_delay_ms=500, signal_source="none"),
    simulate=True,
)

pointer = PointerDriver(simulate=True, sim_position=(0, 0))
pointer.initialize()
runner = DrawRunner(config, pointer=pointer, signal_source=NullSignalSource())


def user_grabs_mouse():
    x, y = pointer.get_position()
    print(f"Simulated user moves pointer from ({x}, {y}) to ({x - 60}, {y + 40})")
    pointer.transport.set_sim_position(x - 60, y + 40)


# 500 ms startup + 1100 ms settle/focus clicks + ~1 s of dragging
runner.loop.call_later(2600, user_grabs_mouse)

exit_code = runner.run(duration_ms=12000)
print("Run finished:", exit_code, "final pointer position:", pointer.get_position())
sys.exit(exit_code)
