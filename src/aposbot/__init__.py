"""ApostropheCMS documentation assistant."""
