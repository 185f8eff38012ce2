"""Backend clients for the riddle service."""
