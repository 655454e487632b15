# sw_platform/__init__.py
# ShareWatch - platform layer (config, models, persistence, projection)
