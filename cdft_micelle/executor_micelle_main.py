# cdft_micelle/executor_micelle_main.py

import json
import sys
from pathlib import Path

from .utils import get_unique_dir, ExecutionContext, find_key_recursive
from .engines.micelle import micelle_executor


TASKS = ("micelle", "critical_micelle")


def main(argv=None):
    argv = sys.argv[1:] if argv is None else list(argv)
    if len(argv) < 1:
        print("Usage: python3 -m cdft_micelle.executor_micelle_main <executor_input.json>")
        sys.exit(1)

    input_file = Path(argv[0])
    if not input_file.exists():
        raise FileNotFoundError(f"Missing input file: {input_file}")

    root = input_file.parent

    input_data = input_file.read_text()
    try:
        config = json.loads(input_data)
    except json.JSONDecodeError as e:
        raise ValueError(f"❌ Invalid JSON format in {input_file}: {e}")

    task = find_key_recursive(config, "task", default="micelle")
    if task not in TASKS:
        raise ValueError(f"Invalid task: {task}. Choose one of {list(TASKS)}.")

    scratch = get_unique_dir("scratch", root=root)
    plots = get_unique_dir("plots", root=root)

    ctx = ExecutionContext(
        input_file=input_file,
        input_data=input_data,
        scratch_dir=scratch,
        plots_dir=plots,
    )

    result = micelle_executor(ctx, config)

    print(f"✅ Execution completed for task={task}, results in {scratch}")
    return result


if __name__ == "__main__":
    main()
