"""pagepace: adaptive page-per-day reading plans."""
