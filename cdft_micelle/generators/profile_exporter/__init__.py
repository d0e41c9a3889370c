from .micelle_profile_exporter import export_micelle_profile, plot_micelle_profile
