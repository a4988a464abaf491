# tutorlink/services/__init__.py
