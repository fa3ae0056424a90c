"""Settings and logging shared by every stocksheet module."""
