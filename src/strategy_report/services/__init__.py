"""Services built on the libraries: report analysis and report output."""
