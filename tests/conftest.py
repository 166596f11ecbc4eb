import os

# Headless chart rendering for the experiment driver tests
os.environ.setdefault("MPLBACKEND", "Agg")
