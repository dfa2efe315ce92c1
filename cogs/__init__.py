"""Discord cogs for the staff status bot."""
