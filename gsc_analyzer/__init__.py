"""Weekly Search Console rollups, rankings and trends."""
