"""Browser-side collaborators: automation drivers, page scripts and timeline lookup."""
