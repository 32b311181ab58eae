"""Release archive validation, extraction and content parsing."""
