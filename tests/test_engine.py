import json

import numpy as np
import pytest

from cdft_micelle.calculators.density_profile import AndersonMixing, Newton, PicardIteration
from cdft_micelle.engines.micelle import build_functional, build_micelle, build_solver, micelle_executor
from cdft_micelle.executor_micelle_main import main
from cdft_micelle.utils import ExecutionContext, find_key_recursive, get_unique_dir


def base_config(task="micelle"):
    return {
        "task": task,
        "system": {
            "species": ["water", "surfactant"],
            "temperature": 1.0,
            "pressure": 0.51,
            "molefracs": [0.98, 0.02],
        },
        "micelle": {
            "geometry": "spherical",
            "points": 64,
            "width": 10.0,
            "initialization": {"peak": -2.0, "width": 2.0},
            "specification": {"type": "chemical_potential"},
        },
        "solver": {
            "picard": {"max_iter": 20, "tol": 1e-5},
            "anderson": {"max_iter": 200, "tol": 1e-10},
        },
    }


def test_find_key_recursive():
    config = {"a": {"b": [{"c": 1}]}, "d": None}
    assert find_key_recursive(config, "c") == 1
    assert find_key_recursive(config, "missing", default=3) == 3


def test_get_unique_dir(tmp_path):
    first = get_unique_dir("scratch", root=tmp_path)
    second = get_unique_dir("scratch", root=tmp_path)
    assert first.name == "scratch"
    assert second.name == "scratch_1"


def test_build_functional_with_interactions():
    config = base_config()
    config["system"]["interactions"] = {
        "mean_field": {"epsilon": [[0.2, 0.1], [0.1, -0.2]], "range": 1.0},
        "local": {"expression": "0.1 * (rho_0 + rho_1)**2"},
    }
    eos = build_functional(config)
    assert eos.components == 2
    assert [c.name for c in eos.contributions()] == ["mean_field", "local"]


def test_build_functional_rejects_unknown_interactions():
    config = base_config()
    config["system"]["interactions"] = {"fmt": {}}
    with pytest.raises(ValueError):
        build_functional(config)


def test_build_solver_keeps_stage_order():
    config = base_config()
    config["solver"] = {"newton": {"max_iter": 5}, "picard": {}, "anderson": {"mmax": 10}}
    solver = build_solver(config)
    assert [type(s) for s in solver.stages] == [Newton, PicardIteration, AndersonMixing]
    assert solver.stages[2].mmax == 10

    config["solver"] = {"broyden": {}}
    with pytest.raises(ValueError):
        build_solver(config)


def test_build_micelle_rejects_unknown_geometry(ideal_bulk):
    config = base_config()
    config["micelle"]["geometry"] = "planar"
    with pytest.raises(ValueError):
        build_micelle(ideal_bulk, config)


def test_micelle_executor_exports_results(tmp_path):
    ctx = ExecutionContext(scratch_dir=tmp_path / "scratch", plots_dir=tmp_path / "plots")
    result = micelle_executor(ctx, base_config())

    assert result["task"] == "micelle"
    assert result["delta_omega"] == pytest.approx(0.0, abs=1e-5)

    summary = json.loads((tmp_path / "scratch" / "micelle_result.json").read_text())
    assert summary["delta_n"] == pytest.approx(result["delta_n"])

    profile = json.loads((tmp_path / "scratch" / "micelle_profile.json").read_text())
    assert profile["geometry"] == "spherical"
    assert len(profile["density"]["surfactant"]) == 64
    np.testing.assert_allclose(profile["bulk"]["molefracs"], [0.98, 0.02])
    assert (tmp_path / "plots" / "micelle_profile.png").exists()


def test_main_runs_from_input_file(tmp_path):
    input_file = tmp_path / "input.json"
    input_file.write_text(json.dumps(base_config()))

    result = main([str(input_file)])

    assert result["task"] == "micelle"
    assert (tmp_path / "scratch" / "micelle_result.json").exists()
    assert (tmp_path / "plots").is_dir()


def test_main_rejects_unknown_task(tmp_path):
    input_file = tmp_path / "input.json"
    input_file.write_text(json.dumps(base_config(task="rdf_bulk")))
    with pytest.raises(ValueError):
        main([str(input_file)])
