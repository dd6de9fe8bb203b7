"""LinkedIn profile batch scraper and profile store.

The scraper side drives one browser tab at a time through Playwright and
forwards each extracted profile to the REST backend built on FastAPI.
"""
