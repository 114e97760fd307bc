"""The GRAIPE application shell: workspace, main window and start-up."""
