"""HTTP service exposing the rpaas control plane."""
