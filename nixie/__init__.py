"""nixie: evaluate a Nix-style flake across a fixed set of systems."""
