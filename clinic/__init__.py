"""Hospital operations app.

Models, services, serializers, views and the WebSocket change feed for
the OPD queue, beds, admissions, inventory, prescriptions and
appointments.
"""
