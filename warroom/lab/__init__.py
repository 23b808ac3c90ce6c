"""War Room lab: persona-based multi-agent pipelines."""
