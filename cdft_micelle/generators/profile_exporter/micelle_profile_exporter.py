import json
from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt


def export_micelle_profile(ctx, micelle, filename="micelle_profile.json", species=None):
    """
    Export a solved micelle profile to <scratch_dir>/<filename>.

    Layout
    ------
    {
        "geometry": "spherical" | "cylindrical",
        "temperature": float,
        "bulk": {"pressure": ..., "partial_density": [...], "molefracs": [...],
                 "chemical_potential": [...]},
        "delta_omega": float | null,
        "delta_n": [...] | null,
        "r": [...],
        "density": {species: [...]},
        "external_potential": {species: [...]}
    }
    """
    if ctx is None or not hasattr(ctx, "scratch_dir"):
        raise ValueError("ctx must provide scratch_dir")

    scratch_dir = Path(ctx.scratch_dir)
    scratch_dir.mkdir(parents=True, exist_ok=True)

    species = _species_names(micelle, species)
    bulk = micelle.bulk

    # -------------------------
    # Assemble
    # -------------------------
    out = {
        "geometry": micelle.profile.grid.geometry,
        "temperature": micelle.temperature,
        "bulk": {
            "pressure": float(bulk.pressure()),
            "partial_density": bulk.partial_density.tolist(),
            "molefracs": bulk.molefracs.tolist(),
            "chemical_potential": bulk.chemical_potential().tolist(),
        },
        "delta_omega": None if micelle.delta_omega is None else float(micelle.delta_omega),
        "delta_n": None if micelle.delta_n is None else np.asarray(micelle.delta_n).tolist(),
        "r": micelle.r.tolist(),
        "density": {name: micelle.density[i].tolist() for i, name in enumerate(species)},
        "external_potential": {
            name: micelle.external_potential[i].tolist() for i, name in enumerate(species)
        },
    }

    out_file = scratch_dir / filename
    with open(out_file, "w") as f:
        json.dump(out, f, indent=2)

    print(f"✅ Micelle profile exported to: {out_file}")
    return out_file


def plot_micelle_profile(ctx, micelle, filename="micelle_profile.png", species=None):
    """Plot ρ_i(r) / ρ_i^b of every component to <plots_dir>/<filename>."""
    if ctx is None or not hasattr(ctx, "plots_dir"):
        raise ValueError("ctx must provide plots_dir")

    plots = Path(ctx.plots_dir)
    plots.mkdir(parents=True, exist_ok=True)

    species = _species_names(micelle, species)
    bulk_density = micelle.bulk.partial_density

    plt.figure()
    for i, name in enumerate(species):
        if bulk_density[i] > 0.0:
            plt.plot(micelle.r, micelle.density[i] / bulk_density[i], label=name)
    plt.xlabel("r")
    plt.ylabel(r"$\rho_i(r) / \rho_i^b$")
    plt.yscale("log")
    plt.title(f"Micelle profile ({micelle.profile.grid.geometry})")
    plt.legend()
    plt.tight_layout()
    out_file = plots / filename
    plt.savefig(out_file)
    plt.close()

    return out_file


def _species_names(micelle, species):
    if species is None:
        species = getattr(micelle.profile.dft, "species", None)
    if species is None:
        species = [f"component_{i}" for i in range(micelle.density.shape[0])]
    return list(species)
