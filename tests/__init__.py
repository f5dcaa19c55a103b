"""Tests for the Nameday Tracker integration."""
