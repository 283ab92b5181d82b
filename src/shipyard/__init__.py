"""Shipyard: build and deploy web projects to hosting providers."""
