"""Scheduled and triggered backend jobs for PrepMaster."""
