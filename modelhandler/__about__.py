__version__ = "1.0.0"
__description__ = "modelhandler : REST resource handlers for data models"
