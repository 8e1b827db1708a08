"""Foundation: errors, configuration, languages."""
