"""Optional persistence of extracted components."""
