# micelle executor
# reads the input dictionary, builds functional, bulk state and micelle profile, runs the solver and exports the results


def build_functional(config):
    """
    Helmholtz energy functional from the "system" section.

    "system": {
        "species": ["water", "surfactant"],
        "interactions": {
            "mean_field": {"epsilon": [[...], [...]], "range": 1.0},
            "local": {"expression": "0.5 * (rho_0 + rho_1)**2"}
        }
    }
    """
    from cdft_micelle.calculators.free_energy.contributions import LocalContribution, MeanFieldContribution
    from cdft_micelle.calculators.free_energy.functional import HelmholtzEnergyFunctional
    from cdft_micelle.utils import find_key_recursive

    species = find_key_recursive(config, "species")
    if species is None:
        raise KeyError("No 'species' found in the input.")

    interactions = find_key_recursive(config, "interactions", default={}) or {}
    contributions = []

    mean_field = interactions.get("mean_field")
    if mean_field is not None:
        contributions.append(
            MeanFieldContribution(mean_field["epsilon"], mean_field.get("range", 1.0))
        )

    local = interactions.get("local")
    if local is not None:
        contributions.append(LocalContribution(local["expression"], len(species)))

    unknown = set(interactions) - {"mean_field", "local"}
    if unknown:
        raise ValueError(f"Unknown interaction types {sorted(unknown)}. Expected 'mean_field' or 'local'.")

    return HelmholtzEnergyFunctional(species, contributions)


def build_solver(config):
    """
    DFTSolver from the "solver" section; stages run in the order given.

    "solver": {
        "picard": {"max_iter": 50, "tol": 1e-5, "damping_constant": 0.15},
        "anderson": {"max_iter": 250, "tol": 1e-10, "mmax": 100},
        "newton": {"max_iter": 50, "tol": 1e-11}
    }

    Returns None (the default schedule) if no section is present.
    """
    from cdft_micelle.calculators.density_profile.solver import AndersonMixing, DFTSolver, Newton, PicardIteration
    from cdft_micelle.utils import find_key_recursive

    section = find_key_recursive(config, "solver")
    if not section:
        return None

    stage_types = {"picard": PicardIteration, "anderson": AndersonMixing, "newton": Newton}
    stages = []
    for name, parameters in section.items():
        if name == "verbose":
            continue
        if name not in stage_types:
            raise ValueError(f"Unknown solver stage '{name}'. Available stages: {list(stage_types)}")
        stages.append(stage_types[name](**(parameters or {})))

    return DFTSolver(stages=stages, verbose=bool(section.get("verbose", False)))


def build_bulk(eos, config):
    """Bulk state from temperature, molefracs and pressure (or total density)."""
    from cdft_micelle.calculators.bulk_state.state import build_state
    from cdft_micelle.utils import find_key_recursive

    system = find_key_recursive(config, "system", default=config)
    temperature = system.get("temperature")
    molefracs = system.get("molefracs")
    if temperature is None or molefracs is None:
        raise KeyError("The system needs 'temperature' and 'molefracs'.")

    if system.get("pressure") is not None:
        return build_state(
            eos,
            temperature,
            molefracs,
            pressure=system["pressure"],
            density_initialization=system.get("density_initialization", "liquid"),
        )
    if system.get("density") is not None:
        return build_state(eos, temperature, molefracs, volume=1.0 / system["density"])
    raise KeyError("The system needs either 'pressure' or 'density'.")


def build_micelle(bulk, config):
    """
    MicelleProfile from the "micelle" section.

    "micelle": {
        "geometry": "spherical",
        "points": 256,
        "width": 20.0,
        "initialization": {"peak": -2.0, "width": 2.0},
        "specification": {"type": "chemical_potential"}
                       | {"type": "size", "delta_n_surfactant": 10.0, "pressure": 0.5}
    }
    """
    from cdft_micelle.calculators.micelles.micelle_profile import MicelleProfile
    from cdft_micelle.calculators.micelles.specification import MicelleInitialization, MicelleSpecification
    from cdft_micelle.utils import find_key_recursive

    section = find_key_recursive(config, "micelle")
    if section is None:
        raise KeyError("No 'micelle' section found in the input.")

    initialization = section.get("initialization", {})
    if "density" in initialization:
        init = MicelleInitialization.from_density(initialization["density"])
    else:
        init = MicelleInitialization.external_potential(
            initialization.get("peak", -2.0), initialization.get("width", 2.0)
        )

    specification = section.get("specification", {"type": "chemical_potential"})
    kind = specification.get("type", "chemical_potential")
    if kind == "chemical_potential":
        spec = MicelleSpecification.chemical_potential()
    elif kind == "size":
        spec = MicelleSpecification.size(
            specification["delta_n_surfactant"],
            specification.get("pressure", bulk.pressure()),
        )
    else:
        raise ValueError(f"Unknown specification '{kind}'. Expected 'chemical_potential' or 'size'.")

    geometry = section.get("geometry", "spherical")
    if geometry == "spherical":
        builder = MicelleProfile.new_spherical
    elif geometry == "cylindrical":
        builder = MicelleProfile.new_cylindrical
    else:
        raise ValueError(f"Unknown geometry '{geometry}'. Expected 'spherical' or 'cylindrical'.")

    return builder(bulk, section["points"], section["width"], init, spec)


def micelle_executor(ctx, config=None):
    """
    Micelle executor for classical DFT calculations.

    Solves the micelle (first in the initial potential, then free) and,
    for task "critical_micelle", runs the Newton search for the critical
    micelle concentration. Results are exported to the scratch directory.
    """

    import json
    from pathlib import Path

    from cdft_micelle.calculators.micelles.micelle_profile import SolverOptions
    from cdft_micelle.generators.profile_exporter.micelle_profile_exporter import (
        export_micelle_profile,
        plot_micelle_profile,
    )
    from cdft_micelle.utils import find_key_recursive

    # --- Input ---
    if config is None:
        if ctx.input_data is not None:
            config = json.loads(ctx.input_data)
        else:
            with open(ctx.input_file, "r") as f:
                config = json.load(f)

    scratch = Path(ctx.scratch_dir)
    scratch.mkdir(parents=True, exist_ok=True)

    def run_module(module_func, args=None, err_msg="Error running module"):
        """Run a module, reporting which step failed before re-raising."""
        try:
            if args is None:
                return module_func()
            elif isinstance(args, (list, tuple)):
                return module_func(*args)
            else:
                return module_func(args)
        except Exception as e:
            print(f"❌ {err_msg}: {e}")
            raise

    task = find_key_recursive(config, "task", default="micelle")
    if task not in ("micelle", "critical_micelle"):
        raise ValueError(f"❌ Unknown task '{task}'. Expected 'micelle' or 'critical_micelle'.")

    # --- Step 1: Build the system ---
    eos = run_module(build_functional, [config], "Error building the Helmholtz energy functional")
    bulk = run_module(build_bulk, [eos, config], "Error building the bulk state")
    solver = run_module(build_solver, [config], "Error building the solver")
    micelle = run_module(build_micelle, [bulk, config], "Error building the micelle profile")

    print(f"\n🧮 Solving micelle profile ({micelle.profile.grid.geometry}, {micelle.profile.grid.points} points)...\n")

    # --- Step 2: Solve the micelle ---
    run_module(micelle.solve_micelle_inplace, [solver, solver], "Error solving the micelle profile")
    export_micelle_profile(ctx, micelle, "micelle_profile.json")

    # --- Step 3: Critical micelle concentration ---
    result = {
        "task": task,
        "delta_omega": micelle.delta_omega,
        "delta_n": micelle.delta_n.tolist(),
    }

    if task == "critical_micelle":
        cmc = find_key_recursive(config, "critical_micelle", default={}) or {}
        options = SolverOptions(
            max_iter=cmc.get("max_iter"),
            tol=cmc.get("tol"),
            verbose=bool(cmc.get("verbose", False)),
        )
        print("\n🧮 Searching the critical micelle concentration...\n")
        run_module(micelle.critical_micelle, [solver, options], "Error in the critical micelle search")
        export_micelle_profile(ctx, micelle, "critical_micelle_profile.json")

        result.update(
            {
                "delta_omega": micelle.delta_omega,
                "delta_n": micelle.delta_n.tolist(),
                "cmc_molefracs": micelle.bulk.molefracs.tolist(),
                "cmc_partial_density": micelle.bulk.partial_density.tolist(),
                "pressure": float(micelle.bulk.pressure()),
            }
        )

    # --- Step 4: Export ---
    out_file = scratch / "micelle_result.json"
    with open(out_file, "w") as fh:
        json.dump(result, fh, indent=2)

    if ctx.plots_dir is not None:
        plot_micelle_profile(ctx, micelle)

    print(f"\n ✅ Micelle executor completed successfully for task '{task}'.\n")

    return result
