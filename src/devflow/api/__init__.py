# HTTP surface of the relay. ``devflow.api.app.create_app`` builds the app.
