# Data - bar validation and loaders
