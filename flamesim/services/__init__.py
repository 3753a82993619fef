"""Remote service access."""
from flamesim.services.graphql_gateway import Failure, RemoteGateway, Success

__all__ = ["Failure", "RemoteGateway", "Success"]
