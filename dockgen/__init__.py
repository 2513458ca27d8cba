# -----------------------------------------------------------------------------
# DOCKGEN
# -----------------------------------------------------------------------------
# Repository -> stack detection -> Dockerfile -> validated image build.
# -----------------------------------------------------------------------------

__version__ = "1.0.0"
