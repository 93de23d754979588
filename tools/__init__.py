# ============================================================================
# OPERATOR TOOLS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tools - Command-line helpers run against a deployed service
# PURPOSE: Reference grid CSV parsing and import
# CREATED: 16 SEP 2026
# ============================================================================
