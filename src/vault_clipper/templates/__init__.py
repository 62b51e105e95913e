"""Note templates and their rendering."""
