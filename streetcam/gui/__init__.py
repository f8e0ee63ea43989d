"""Qt glue between the view-mode controller and the map layer."""
