"""Farm Sync - keep MasterChef farms and Voter weights in line with governance votes."""

__version__ = "0.1.0"
