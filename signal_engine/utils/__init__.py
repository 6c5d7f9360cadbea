# Utils - logging, configuration and shared indicator math
