"""
Backend Serena (gestão de consultórios de psicologia).

Estrutura:
- config.py         : configuração via variáveis de ambiente / .env
- logging_config.py : logging estruturado (structlog)
- errors.py         : taxonomia de erros (-> status HTTP)
- db.py             : Database (engine + sessões SQLAlchemy), injetado nos serviços
- time_utils.py     : datas em UTC, limites de filtro, chave de mês
- auth_models.py    : Usuário e Principal
- models.py         : modelos ORM e enums do domínio
- auth_security.py  : hash de senha e JWT
- auth_service.py   : autenticação e gestão de usuários
- scoping.py        : filtro por proprietário (bypass do super_admin)
- scheduling.py     : conflito de horário e estados do agendamento
- services.py       : casos de uso (pacientes, sessões, agendamentos, pagamentos)
- reports.py        : relatórios e dashboard
- schemas.py        : schemas Pydantic da API
- deps.py           : dependências FastAPI (banco, settings, principal)
- api_main.py       : aplicação FastAPI (rotas em routers/)
- cli.py / seed.py  : utilitários de operação
"""
