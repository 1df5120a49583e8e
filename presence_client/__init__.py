"""Presence Node client: polls a presence server and shows who is here."""
