"""Service clients and domain services for GameShelf."""
