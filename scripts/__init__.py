# ============================================================================
# OPERATOR SCRIPTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tooling - Database deployment
# PURPOSE: Schema deployment importable from main.py (AUTO_BOOTSTRAP_SCHEMA)
# CREATED: 16 SEP 2026
# ============================================================================
