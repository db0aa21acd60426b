"""
====================================================================
TAREFAS AGENDADAS (CRON JOBS) - KÈSO IMÓVEIS
====================================================================
Tarefas incluídas:
- Expiração de anúncios diretos do proprietário com prazo vencido
- Expiração de planos contratados com prazo vencido

Uso:
    # Executar manualmente
    python -m services.scheduled_tasks

    # Ou via cron (Linux) - executar de hora a hora:
    0 * * * * cd /app/backend && python -m services.scheduled_tasks

    # Ou iniciar como processo em background:
    python -m services.scheduled_tasks --daemon --interval 1
====================================================================
"""

import asyncio
import logging
import argparse
from datetime import datetime, timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from config import MONGO_URL, DB_NAME
from services.lifecycle import expire_owner_direct_properties, expire_property_plans


logger = logging.getLogger(__name__)


class ScheduledTasksService:
    """Serviço de tarefas agendadas."""

    def __init__(self, db=None):
        self.client = None
        self.db = db

    async def connect(self):
        if self.db is not None:
            return
        self.client = AsyncIOMotorClient(MONGO_URL)
        self.db = self.client[DB_NAME]
        logger.info(f"Conectado à base de dados: {DB_NAME}")

    async def disconnect(self):
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("Desconectado da base de dados")

    async def run_all_tasks(self, now: Optional[datetime] = None) -> dict:
        """Executa todas as varreduras e devolve o resumo."""
        logger.info("=" * 50)
        logger.info("INICIANDO TAREFAS AGENDADAS")
        logger.info("=" * 50)

        try:
            await self.connect()
            summary = {
                "expired_properties": await expire_owner_direct_properties(self.db, now),
                "expired_plans": await expire_property_plans(self.db, now),
            }
            logger.info("RESUMO DAS TAREFAS")
            logger.info(f"- Anúncios expirados: {summary['expired_properties']}")
            logger.info(f"- Planos expirados: {summary['expired_plans']}")
            return summary
        except Exception as e:
            logger.error(f"Erro nas tarefas agendadas: {e}")
            raise
        finally:
            await self.disconnect()


async def run_daemon(interval_hours: int = 1):
    """Executa as tarefas em loop."""
    service = ScheduledTasksService()

    while True:
        try:
            await service.run_all_tasks()
        except Exception as e:
            logger.error(f"Erro no daemon: {e}")

        next_run = datetime.now() + timedelta(hours=interval_hours)
        logger.info(f"Próxima execução: {next_run.strftime('%Y-%m-%d %H:%M:%S')}")
        await asyncio.sleep(interval_hours * 3600)


async def main():
    parser = argparse.ArgumentParser(description='KÈSO Imóveis - Tarefas Agendadas')
    parser.add_argument('--daemon', action='store_true', help='Executar em modo daemon (loop contínuo)')
    parser.add_argument('--interval', type=int, default=1, help='Intervalo em horas (para daemon)')

    args = parser.parse_args()

    if args.daemon:
        logger.info("Iniciando em modo daemon...")
        await run_daemon(args.interval)
    else:
        await ScheduledTasksService().run_all_tasks()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(main())
