"""Development entrypoint for the siegekeeper HTTP API."""

from __future__ import annotations

from siegekeeper.main import main

if __name__ == "__main__":
    main()
