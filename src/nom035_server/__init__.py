"""nom035_server — FastAPI HTTP surface for the NOM-035 assessment engine."""
