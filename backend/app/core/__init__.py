"""Core configuration, logging, clock, and HTTP plumbing."""
