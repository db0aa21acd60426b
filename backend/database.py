from motor.motor_asyncio import AsyncIOMotorClient

from config import MONGO_URL, DB_NAME

# Singleton para o cliente Motor
_client = None
_db = None


def reset_db_connection():
    """Reset da conexão (útil para testes)."""
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def get_motor_client():
    """Retorna o cliente Motor (criado on-demand)."""
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(MONGO_URL)
    return _client


def get_database():
    """Retorna a base de dados (criada on-demand)."""
    global _db
    if _db is None:
        _db = get_motor_client()[DB_NAME]
    return _db


class DatabaseProxy:
    """
    Proxy para acesso à DB que cria a conexão on-demand.
    Permite usar `db.properties.find()` sem ligar ao importar o módulo.
    """
    def __getattr__(self, name):
        return getattr(get_database(), name)


class ClientProxy:
    """Proxy para o cliente Motor que permite acesso lazy."""
    def close(self):
        reset_db_connection()

    def __getattr__(self, name):
        return getattr(get_motor_client(), name)


db = DatabaseProxy()
client = ClientProxy()
