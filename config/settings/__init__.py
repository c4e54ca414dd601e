"""Settings package for the venue booking engine.

`base.py` holds the configuration shared by every environment; `dev.py`,
`prod.py` and `test.py` override it.
"""
