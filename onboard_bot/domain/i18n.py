SUPPORTED_LANGS = ["en", "es", "pt"]

LANGUAGE_NAMES = {
    "en": "English", "es": "Spanish", "pt": "Portuguese", "fr": "French",
    "de": "German", "it": "Italian", "nl": "Dutch", "ja": "Japanese", "zh": "Chinese",
}

MESSAGES = {
    "CLARIFY": {
        "en": "I appreciate your patience! Could you repeat that? I want to make sure I capture everything correctly.",
        "es": "¡Gracias por tu paciencia! ¿Podrías repetirlo? Quiero asegurarme de registrar todo correctamente.",
        "pt": "Obrigada pela paciência! Você poderia repetir? Quero ter certeza de registrar tudo corretamente.",
    },
    "HICCUP": {
        "en": "Apologies, I had a small hiccup. Could you repeat your last answer?",
        "es": "Disculpa, tuve un pequeño problema. ¿Podrías repetir tu última respuesta?",
        "pt": "Desculpe, tive um pequeno problema. Você poderia repetir sua última resposta?",
    },
    "CONTINUE": {
        "en": "Thanks for that! Let me ask you the next question...",
        "es": "¡Gracias! Déjame hacerte la siguiente pregunta...",
        "pt": "Obrigada! Deixa eu te fazer a próxima pergunta...",
    },
    "CONFIRMED": {
        "en": "Great, everything looks good!",
        "es": "¡Genial, todo se ve bien!",
        "pt": "Ótimo, está tudo certo!",
    },
    "ALREADY_ONBOARDED": {
        "en": "You're all set, your onboarding is already complete! Your account manager will be in touch.",
        "es": "¡Ya está todo listo, tu incorporación ya está completa! Tu gestor de cuenta se pondrá en contacto contigo.",
        "pt": "Está tudo pronto, seu onboarding já foi concluído! Seu gerente de conta entrará em contato.",
    },
    "WORKING_ON_IT": {
        "en": "Almost there! Setting up your Google Drive, intake docs, and access requests... Give me a moment.",
        "es": "¡Casi listo! Estoy preparando tu carpeta de Google Drive, documentos y accesos... Dame un momento.",
        "pt": "Quase lá! Configurando seu Google Drive, documentos e acessos... Me dê um momento.",
    },
    "WELCOME": {
        "en": "👋 {hello} I'm {agent}, your dedicated account manager.\n\n"
              "I'm here to get you onboarded smoothly and make sure we have everything we need to run amazing campaigns for you.\n\n"
              "Let's start with the basics — {ask_name}",
        "es": "👋 {hello} Soy {agent}, tu gestora de cuenta dedicada.\n\n"
              "Estoy aquí para que tu incorporación sea sencilla y tener todo lo necesario para crear campañas increíbles para ti.\n\n"
              "Empecemos por lo básico — {ask_name}",
        "pt": "👋 {hello} Eu sou a {agent}, sua gerente de conta dedicada.\n\n"
              "Estou aqui para tornar seu onboarding tranquilo e garantir que temos tudo para criar campanhas incríveis para você.\n\n"
              "Vamos começar pelo básico — {ask_name}",
    },
    "WELCOME_HELLO": {"en": "Welcome!", "es": "¡Bienvenido!", "pt": "Bem-vindo!"},
    "WELCOME_ASK_NAME": {"en": "what's your name?", "es": "¿cómo te llamas?", "pt": "qual é o seu nome?"},
    "CONFIRM_WELCOME": {
        "en": "Hi{name}! I am {agent}, and now yours and your team's personal 24/7 marketing assistant. It is great to have you onboard!\n\n"
              "I see you've recently signed up with the following details:\n{details}\n\n"
              "Is this correct?\n\n1️⃣ ✅ Correct — let's continue\n2️⃣ ❌ Incorrect — I'd like to make changes",
        "es": "¡Hola{name}! Soy {agent}, y ahora tu asistente de marketing personal 24/7 y la de tu equipo. ¡Es genial tenerte a bordo!\n\n"
              "Veo que te has registrado recientemente con los siguientes datos:\n{details}\n\n"
              "¿Está todo correcto?\n\n1️⃣ ✅ Correcto — continuemos\n2️⃣ ❌ Incorrecto — quiero hacer cambios",
        "pt": "Oi{name}! Eu sou a {agent}, e agora sua assistente de marketing pessoal 24/7 e da sua equipe. É ótimo ter você a bordo!\n\n"
              "Vejo que você se cadastrou recentemente com os seguintes dados:\n{details}\n\n"
              "Está tudo correto?\n\n1️⃣ ✅ Correto — vamos continuar\n2️⃣ ❌ Incorreto — gostaria de fazer alterações",
    },
    "NEXT_STEPS_INTRO": {
        "en": "Great{name}! Now let me tell you what I can help you with as your 24/7 marketing assistant:\n",
        "es": "¡Genial{name}! Ahora déjame contarte lo que puedo hacer por ti como tu asistente de marketing 24/7:\n",
        "pt": "Ótimo{name}! Agora deixa eu te contar o que posso fazer por você como sua assistente de marketing 24/7:\n",
    },
    "NEXT_STEPS_NEED": {
        "en": "\nTo get started with your campaigns, I need a couple of things:",
        "es": "\nPara empezar a trabajar en tus campañas, necesito un par de cosas:",
        "pt": "\nPara começar a trabalhar nas suas campanhas, preciso de algumas coisas:",
    },
    "NEXT_STEPS_ACCESS": {
        "en": "Grant us access to your ad accounts:",
        "es": "Concede acceso a tus cuentas publicitarias:",
        "pt": "Conceda acesso às suas contas de anúncios:",
    },
    "NEXT_STEPS_ACCESS_NOTE": {
        "en": "It's a secure one-click process — takes less than 2 minutes!",
        "es": "¡Es un proceso seguro de un clic — toma menos de 2 minutos!",
        "pt": "É um processo seguro de um clique — leva menos de 2 minutos!",
    },
    "NEXT_STEPS_BRAND": {
        "en": "Start gathering your brand materials",
        "es": "Empieza a reunir tus materiales de marca",
        "pt": "Comece a reunir seus materiais de marca",
    },
    "NEXT_STEPS_BRAND_NOTE": {
        "en": "(logo, brand guidelines, color palette, fonts, past ad creatives) — I'll set up a dedicated folder for you shortly.",
        "es": "(logo, guía de marca, paleta de colores, fuentes, creativos anteriores) — te crearé una carpeta dedicada en breve.",
        "pt": "(logo, guia de marca, paleta de cores, fontes, criativos anteriores) — vou criar uma pasta dedicada para você em breve.",
    },
    "NEXT_STEPS_OUTRO": {
        "en": "\nNow, let me ask you a few more questions about your business to personalize your campaigns...",
        "es": "\nAhora, déjame hacerte algunas preguntas más sobre tu negocio para personalizar tus campañas...",
        "pt": "\nAgora, vou fazer mais algumas perguntas sobre seu negócio para personalizar suas campanhas...",
    },
    "DONE_HEADLINE": {
        "en": "Amazing, {name}!",
        "es": "¡Increíble, {name}!",
        "pt": "Incrível, {name}!",
    },
    "DONE_INTRO": {
        "en": "Your onboarding is complete!\n\nI've set everything up for you. Here's what's ready:\n",
        "es": "¡Tu incorporación está completa!\n\nYa dejé todo listo. Esto es lo que está preparado:\n",
        "pt": "Seu onboarding está completo!\n\nJá deixei tudo pronto. Veja o que está preparado:\n",
    },
    "DONE_PROFILE": {
        "en": "✅ Your client profile is saved",
        "es": "✅ Tu perfil de cliente está guardado",
        "pt": "✅ Seu perfil de cliente está salvo",
    },
    "DONE_DRIVE": {
        "en": "Your Google Drive folder is ready!",
        "es": "¡Tu carpeta de Google Drive está lista!",
        "pt": "Sua pasta do Google Drive está pronta!",
    },
    "DONE_UPLOAD": {
        "en": "Upload your brand materials here:",
        "es": "Sube tus materiales de marca aquí:",
        "pt": "Envie seus materiais de marca aqui:",
    },
    "DONE_UPLOAD_NOTE": {
        "en": "\nPlease share your logo, brand book/guidelines, color palette, fonts, past ad creatives and copy examples — anything that helps me understand your brand.\n\nThe more you share, the better I can create content that matches your brand perfectly!",
        "es": "\nComparte tu logo, manual de marca, paleta de colores, fuentes, creativos anteriores y ejemplos de textos — todo lo que me ayude a entender tu marca.\n\n¡Cuanto más compartas, mejor podré crear contenido que encaje con tu marca!",
        "pt": "\nCompartilhe seu logo, manual da marca, paleta de cores, fontes, criativos anteriores e exemplos de textos — tudo que me ajude a entender sua marca.\n\nQuanto mais você compartilhar, melhor consigo criar conteúdo que combine com sua marca!",
    },
    "DONE_ACCESS": {
        "en": "One more thing — grant us access to your ad accounts:",
        "es": "Una cosa más — concédenos acceso a tus cuentas publicitarias:",
        "pt": "Mais uma coisa — conceda acesso às suas contas de anúncios:",
    },
    "DONE_ACCESS_NOTE": {
        "en": "\nIt's a secure one-click process. This lets us manage your campaigns without needing your login credentials.",
        "es": "\nEs un proceso seguro de un clic. Así gestionamos tus campañas sin necesitar tus credenciales.",
        "pt": "\nÉ um processo seguro de um clique. Assim gerenciamos suas campanhas sem precisar das suas credenciais.",
    },
    "DONE_OUTRO": {
        "en": "\nI'll remember everything about you, {name}. Whenever you message me, I'll know exactly who you are and where we left off. Welcome aboard! 🚀",
        "es": "\nRecordaré todo sobre ti, {name}. Cada vez que me escribas sabré quién eres y dónde lo dejamos. ¡Bienvenido a bordo! 🚀",
        "pt": "\nVou lembrar de tudo sobre você, {name}. Sempre que me escrever, saberei quem você é e onde paramos. Bem-vindo a bordo! 🚀",
    },
}

DETAIL_LABELS = {
    "en": {"plan": "Plan", "website": "Website", "business_name": "Business", "business_description": "Description", "product_service": "Product/Service", "email": "Email"},
    "es": {"plan": "Plan", "website": "Sitio web", "business_name": "Empresa", "business_description": "Descripción", "product_service": "Producto/Servicio", "email": "Email"},
    "pt": {"plan": "Plano", "website": "Website", "business_name": "Empresa", "business_description": "Descrição", "product_service": "Produto/Serviço", "email": "Email"},
}

CAPABILITIES = {
    "en": {
        "strategic": ("Strategic Planning", "Campaign briefs and media plans"),
        "competitor": ("Competitor Intelligence", "Analyze competitor ads and strategies"),
        "creative": ("Creative Production", "Ad images, copy, and video content"),
        "audience": ("Audience Analysis", "Target audience research and segmentation"),
        "keyword": ("Keyword Research", "Search volume, keyword ideas, and SEO opportunities"),
        "performance": ("Performance Tracking", "Campaign reports and trend analysis"),
        "automation": ("Automation", "Scheduled monitoring, anomaly detection, and budget optimization"),
        "reporting": ("Advanced Reporting", "Google Slides presentations and executive reviews"),
    },
    "es": {
        "strategic": ("Planificación Estratégica", "Briefings de campaña y planes de medios"),
        "competitor": ("Inteligencia Competitiva", "Análisis de anuncios y estrategias de la competencia"),
        "creative": ("Producción Creativa", "Imágenes, textos y vídeos para anuncios"),
        "audience": ("Análisis de Audiencia", "Investigación y segmentación del público objetivo"),
        "keyword": ("Investigación de Keywords", "Volumen de búsqueda, ideas y oportunidades SEO"),
        "performance": ("Seguimiento de Rendimiento", "Informes de campañas y análisis de tendencias"),
        "automation": ("Automatización", "Monitoreo programado, detección de anomalías y optimización"),
        "reporting": ("Reportes Avanzados", "Presentaciones en Google Slides y revisiones ejecutivas"),
    },
    "pt": {
        "strategic": ("Planejamento Estratégico", "Briefings de campanha e planos de mídia"),
        "competitor": ("Inteligência Competitiva", "Análise de anúncios e estratégias da concorrência"),
        "creative": ("Produção Criativa", "Imagens, textos e vídeos para anúncios"),
        "audience": ("Análise de Audiência", "Pesquisa e segmentação do público-alvo"),
        "keyword": ("Pesquisa de Keywords", "Volume de busca, ideias e oportunidades de SEO"),
        "performance": ("Acompanhamento de Performance", "Relatórios de campanha e análise de tendências"),
        "automation": ("Automação", "Monitoramento agendado, detecção de anomalias e otimização"),
        "reporting": ("Relatórios Avançados", "Apresentações em Google Slides e revisões executivas"),
    },
}


def normalize_lang(lang: str | None) -> str:
    # "es-AR" / "pt_BR" → base language
    code = (lang or "").strip().lower()[:2]
    return code if code in SUPPORTED_LANGS else "en"


def language_name(code: str | None) -> str:
    return LANGUAGE_NAMES.get(code or "en", "English")


def t(key: str, lang: str | None, **kwargs) -> str:
    text = MESSAGES[key][normalize_lang(lang)]
    return text.format(**kwargs) if kwargs else text
