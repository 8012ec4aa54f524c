"""Request context tracking and global exception handlers."""
