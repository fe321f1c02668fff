from .cli import main

__all__ = ["main"]

# -------------------------
# konnect package structure
# -------------------------
# config.py: constants & env overrides (KK_DATA_DIR, KK_OVERPASS_URLS, ...).
# categories.py: establishment category registry.
# io.py: JSON artifact reading/writing.
# poi/: Overpass client, normalization, schema/validation, dedup/merge.
# domains_overlay/: heatmap aggregation, surname and population overlays.
# stats.py: breakdowns printed by the stages.
# pipeline.py: one function per pipeline stage.
# cli.py: argparse entrypoint (`konnect <stage>`).
