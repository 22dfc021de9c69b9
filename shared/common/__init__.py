# Shared Common Library for the Exhibition Booking platform
# Authentication, error handling, pagination, middleware and helpers
# used by the services under services/.

__version__ = "1.0.0"
