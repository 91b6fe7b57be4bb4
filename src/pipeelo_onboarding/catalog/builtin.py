"""
Built-in catalog seed data.

Loaded into erp_templates / prompt_templates by seed_catalog().
"""

from pipeelo_onboarding.contracts.records import ErpCommand, ErpTemplate, IntegrationField, PromptTemplate

BUILTIN_ERP_TEMPLATES: list[ErpTemplate] = [
    ErpTemplate(
        slug="protheus",
        name="TOTVS Protheus",
        description="Integração com TOTVS Protheus via REST API",
        logo="/erp-logos/protheus.png",
        integration_fields=[
            IntegrationField(
                name="base_url",
                type="url",
                label="URL Base do Sistema",
                required=True,
                placeholder="https://sua-empresa.protheus.com.br",
            ),
            IntegrationField(name="api_token", type="password", label="Token de API", required=True),
            IntegrationField(
                name="environment", type="text", label="Ambiente", required=True, placeholder="ENVIRONMENT=PROD"
            ),
        ],
        commands=[
            ErpCommand(
                name="get_client_data",
                description="Buscar dados do cliente por código",
                parameters=["client_code"],
                response_format={"client_id": "string", "name": "string", "document": "string", "email": "string"},
            ),
            ErpCommand(
                name="get_products",
                description="Listar produtos disponíveis",
                response_format={"products": "array"},
            ),
            ErpCommand(
                name="create_order",
                description="Criar pedido de venda",
                parameters=["client_code", "store_code", "items"],
                response_format={"order_id": "string", "status": "string"},
            ),
        ],
    ),
    ErpTemplate(
        slug="sap",
        name="SAP Business One",
        description="Integração com SAP Business One via Service Layer",
        logo="/erp-logos/sap.png",
        integration_fields=[
            IntegrationField(
                name="server_url",
                type="url",
                label="URL do Service Layer",
                required=True,
                placeholder="https://servidor:50000/b1s/v1",
            ),
            IntegrationField(name="database", type="text", label="Nome da Base de Dados", required=True),
            IntegrationField(name="username", type="text", label="Usuário", required=True),
            IntegrationField(name="password", type="password", label="Senha", required=True),
        ],
        commands=[
            ErpCommand(name="login", description="Autenticar no SAP Service Layer", response_format={"sessionId": "string"}),
            ErpCommand(
                name="get_business_partners",
                description="Buscar parceiros de negócio",
                parameters=["sessionId", "name"],
                response_format={"value": "array"},
            ),
            ErpCommand(
                name="get_items",
                description="Buscar itens/produtos",
                parameters=["sessionId"],
                response_format={"value": "array"},
            ),
        ],
    ),
    ErpTemplate(
        slug="oracle",
        name="Oracle ERP Cloud",
        description="Integração com Oracle ERP Cloud via REST API",
        logo="/erp-logos/oracle.png",
        integration_fields=[
            IntegrationField(name="instance_url", type="url", label="URL da Instância", required=True),
            IntegrationField(name="username", type="text", label="Usuário", required=True),
            IntegrationField(name="password", type="password", label="Senha", required=True),
        ],
        commands=[
            ErpCommand(name="get_customers", description="Buscar clientes", response_format={"items": "array"}),
        ],
    ),
    ErpTemplate(
        slug="custom",
        name="ERP Personalizado",
        description="Template genérico para ERPs com API REST customizada",
        logo="/erp-logos/custom.png",
        integration_fields=[
            IntegrationField(name="api_base_url", type="url", label="URL Base da API", required=True),
            IntegrationField(name="api_key", type="password", label="Chave da API", required=True),
        ],
        commands=[
            ErpCommand(
                name="test_connection",
                description="Testar conexão com a API",
                response_format={"status": "string", "data": "object"},
            ),
        ],
    ),
]


BUILTIN_PROMPT_TEMPLATES: list[PromptTemplate] = [
    PromptTemplate(
        slug="customer-support",
        name="Atendimento ao Cliente",
        description="Assistente especializado em atendimento e suporte ao cliente",
        category="Atendimento",
        sector="Geral",
        placeholders=["NOME_EMPRESA", "TELEFONE", "EMAIL", "ENDERECO", "WEBSITE", "SETOR", "PRODUTOS_SERVICOS"],
        content=(
            "Você é um assistente de atendimento ao cliente da empresa {NOME_EMPRESA}.\n\n"
            "## INFORMAÇÕES DA EMPRESA:\n"
            "- **Nome**: {NOME_EMPRESA}\n"
            "- **Setor**: {SETOR}\n"
            "- **Telefone**: {TELEFONE}\n"
            "- **Email**: {EMAIL}\n"
            "- **Website**: {WEBSITE}\n"
            "- **Endereço**: {ENDERECO}\n\n"
            "## PRODUTOS/SERVIÇOS:\n"
            "{PRODUTOS_SERVICOS}\n\n"
            "Seja cordial, empático e profissional. Quando não souber uma informação, "
            "encaminhe para um especialista."
        ),
    ),
    PromptTemplate(
        slug="sales-assistant",
        name="Assistente de Vendas",
        description="Especialista em vendas consultivas e identificação de oportunidades",
        category="Vendas",
        sector="Comercial",
        placeholders=[
            "NOME_EMPRESA",
            "TELEFONE",
            "EMAIL",
            "WEBSITE",
            "PRODUTOS_SERVICOS",
            "PLANOS_PRECOS",
            "DIFERENCIAL_COMPETITIVO",
        ],
        content=(
            "Você é um consultor de vendas da {NOME_EMPRESA}.\n\n"
            "- **Contato**: {TELEFONE} | {EMAIL}\n"
            "- **Website**: {WEBSITE}\n\n"
            "## NOSSOS PRODUTOS/SERVIÇOS:\n{PRODUTOS_SERVICOS}\n\n"
            "## PLANOS E PREÇOS:\n{PLANOS_PRECOS}\n\n"
            "## NOSSO DIFERENCIAL:\n{DIFERENCIAL_COMPETITIVO}\n\n"
            "Conduza a conversa de forma consultiva: descoberta, qualificação, apresentação, "
            "objeções e fechamento."
        ),
    ),
    PromptTemplate(
        slug="technical-support",
        name="Suporte Técnico",
        description="Especialista em resolução de problemas técnicos",
        category="Suporte",
        sector="Tecnologia",
        placeholders=["NOME_EMPRESA", "PRODUTOS_SERVICOS", "SISTEMAS_UTILIZADOS", "ESCALACAO_NIVEL2"],
        content=(
            "Você é um especialista em suporte técnico da {NOME_EMPRESA}.\n\n"
            "## PRODUTOS/SISTEMAS:\n{PRODUTOS_SERVICOS}\n\n"
            "## SISTEMAS UTILIZADOS:\n{SISTEMAS_UTILIZADOS}\n\n"
            "## ESCALAÇÃO:\n{ESCALACAO_NIVEL2}\n\n"
            "Forneça soluções passo a passo e confirme se o problema foi resolvido."
        ),
    ),
    PromptTemplate(
        slug="ecommerce-assistant",
        name="Assistente de E-commerce",
        description="Especializado em vendas online e conversão de visitantes",
        category="E-commerce",
        sector="Varejo",
        placeholders=["NOME_EMPRESA", "WEBSITE", "PRODUTOS_PRINCIPAIS", "POLITICAS_ENTREGA", "FORMAS_PAGAMENTO"],
        content=(
            "Você é um assistente de e-commerce da {NOME_EMPRESA} ({WEBSITE}).\n\n"
            "## PRODUTOS EM DESTAQUE:\n{PRODUTOS_PRINCIPAIS}\n\n"
            "**Entrega**: {POLITICAS_ENTREGA}\n"
            "**Formas de Pagamento**: {FORMAS_PAGAMENTO}\n\n"
            "Ajude o cliente a encontrar o produto certo e a concluir a compra."
        ),
    ),
]
