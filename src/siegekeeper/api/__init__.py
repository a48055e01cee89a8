"""HTTP surface for siegekeeper."""
