"""ShiurBank audio-lecture player."""
