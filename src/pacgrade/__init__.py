"""Reports installed pacman and AUR packages that have newer builds available."""
