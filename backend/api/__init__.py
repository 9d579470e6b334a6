"""HTTP layer: dependencies, error mapping and versioned routers."""
