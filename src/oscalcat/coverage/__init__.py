"""Tool mapping loading and control coverage classification."""
