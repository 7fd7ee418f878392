# routers/__init__.py
# Routers are registered individually in main.create_app()
