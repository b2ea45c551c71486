"""
LLM invocation for the portal: one-shot text generation for the feedback
analyzer, streamed replies for the faculty chat assistant.

Provider is picked from the model name (gemini*, gpt*, claude*). Every
one-shot call runs under a hard per-call timeout and a bounded retry loop
with exponential backoff; a missing credential fails fast and is never
retried.
"""
import time
import logging

from ..config import config, get_api_key

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """The external service credential for the selected provider is missing."""


class ModelInvocationError(RuntimeError):
    """The model call failed after all retry attempts."""


GEMINI_MODELS = {
    'gemini-flash': 'gemini-2.0-flash',
    'gemini-pro': 'gemini-1.5-pro',
}

OPENAI_MODELS = {
    'gpt-4o': 'gpt-4o',
    'gpt-4o-mini': 'gpt-4o-mini',
    'gpt-4-turbo': 'gpt-4-turbo',
}

ANTHROPIC_MODELS = {
    'claude-sonnet': 'claude-sonnet-4-20250514',
    'claude-haiku': 'claude-3-5-haiku-20241022',
}

MAX_OUTPUT_TOKENS = 2000


def resolve_provider(model: str) -> str:
    """Determine provider from model name."""
    if model.startswith('claude'):
        return 'anthropic'
    if model.startswith('gpt'):
        return 'openai'
    return 'gemini'


def _resolve_model(provider: str, model: str) -> str:
    if provider == 'anthropic':
        return ANTHROPIC_MODELS.get(model, model)
    if provider == 'openai':
        return OPENAI_MODELS.get(model, model)
    actual = GEMINI_MODELS.get(model, model)
    return actual.replace('models/', '')


def require_api_key(provider: str) -> str:
    """Return the provider key or raise ConfigurationError."""
    api_key = get_api_key(provider)
    if not api_key:
        raise ConfigurationError(f"{provider.upper()} API key is not configured. Check your .env file.")
    return api_key


def ensure_configured(model: str = None) -> None:
    """Fail before any work starts when the provider for `model` has no key."""
    require_api_key(resolve_provider(model or config.default_model))


# =============================================================================
# PROVIDER CALLS
# =============================================================================

def _to_gemini_contents(messages: list) -> list:
    return [
        {"role": "model" if m.get("role") == "assistant" else "user", "parts": [m.get("content", "")]}
        for m in messages
    ]


def _gemini_model(api_key: str, model: str, system_prompt: str = None):
    import google.generativeai as genai
    genai.configure(api_key=api_key)
    if system_prompt:
        return genai.GenerativeModel(model, system_instruction=system_prompt)
    return genai.GenerativeModel(model)


def _generate_with_gemini(api_key: str, model: str, messages: list, system_prompt: str = None) -> str:
    gen_model = _gemini_model(api_key, model, system_prompt)
    response = gen_model.generate_content(
        _to_gemini_contents(messages),
        request_options={"timeout": config.llm_timeout},
    )
    return response.text


def _generate_with_openai(api_key: str, model: str, messages: list, system_prompt: str = None) -> str:
    from openai import OpenAI
    client = OpenAI(api_key=api_key, timeout=config.llm_timeout, max_retries=0)

    chat = [{"role": "system", "content": system_prompt}] if system_prompt else []
    chat.extend({"role": m.get("role", "user"), "content": m.get("content", "")} for m in messages)

    response = client.chat.completions.create(
        model=model,
        messages=chat,
        max_tokens=MAX_OUTPUT_TOKENS,
        temperature=0.3
    )
    return response.choices[0].message.content or ""


def _generate_with_anthropic(api_key: str, model: str, messages: list, system_prompt: str = None) -> str:
    import anthropic
    client = anthropic.Anthropic(api_key=api_key, timeout=config.llm_timeout, max_retries=0)

    kwargs = {"system": system_prompt} if system_prompt else {}
    response = client.messages.create(
        model=model,
        max_tokens=MAX_OUTPUT_TOKENS,
        messages=[{"role": m.get("role", "user"), "content": m.get("content", "")} for m in messages],
        **kwargs
    )
    return response.content[0].text


PROVIDERS = {
    'gemini': _generate_with_gemini,
    'openai': _generate_with_openai,
    'anthropic': _generate_with_anthropic,
}


# =============================================================================
# PUBLIC API
# =============================================================================

def generate_chat(messages: list, system_prompt: str = None, model: str = None) -> str:
    """
    Send a message list to the model and return the full reply text.

    Raises ConfigurationError when the key is missing and ModelInvocationError
    once the retry budget is spent.
    """
    model = model or config.default_model
    provider = resolve_provider(model)
    api_key = require_api_key(provider)
    actual_model = _resolve_model(provider, model)
    call = PROVIDERS[provider]

    max_retries = max(1, int(config.llm_max_retries))
    retry_delay = config.llm_retry_delay
    last_error = None

    for attempt in range(max_retries):
        try:
            return call(api_key, actual_model, messages, system_prompt).strip()
        except ConfigurationError:
            raise
        except Exception as e:
            last_error = e
            if attempt < max_retries - 1:
                logger.warning(
                    "%s call failed (%s), retrying in %.1fs (attempt %d/%d)",
                    provider, e, retry_delay, attempt + 1, max_retries
                )
                time.sleep(retry_delay)
                retry_delay *= 2

    logger.error("%s call failed after %d attempts: %s", provider, max_retries, last_error)
    raise ModelInvocationError(str(last_error)) from last_error


def generate_text(prompt: str, model: str = None, system_prompt: str = None) -> str:
    """Single-prompt convenience wrapper over generate_chat()."""
    return generate_chat([{"role": "user", "content": prompt}], system_prompt=system_prompt, model=model)


def stream_chat(messages: list, system_prompt: str = None, model: str = None):
    """
    Yield reply text chunks as the provider produces them.

    No retry here: the chat route falls back to generate_chat() if the
    stream fails before its first chunk.
    """
    model = model or config.default_model
    provider = resolve_provider(model)
    api_key = require_api_key(provider)
    actual_model = _resolve_model(provider, model)

    if provider == 'gemini':
        gen_model = _gemini_model(api_key, actual_model, system_prompt)
        response = gen_model.generate_content(
            _to_gemini_contents(messages),
            stream=True,
            request_options={"timeout": config.llm_timeout},
        )
        for chunk in response:
            if chunk.text:
                yield chunk.text

    elif provider == 'openai':
        from openai import OpenAI
        client = OpenAI(api_key=api_key, timeout=config.llm_timeout, max_retries=0)
        chat = [{"role": "system", "content": system_prompt}] if system_prompt else []
        chat.extend({"role": m.get("role", "user"), "content": m.get("content", "")} for m in messages)
        stream = client.chat.completions.create(
            model=actual_model, messages=chat, max_tokens=MAX_OUTPUT_TOKENS, stream=True
        )
        for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content

    else:
        import anthropic
        client = anthropic.Anthropic(api_key=api_key, timeout=config.llm_timeout, max_retries=0)
        kwargs = {"system": system_prompt} if system_prompt else {}
        with client.messages.stream(
            model=actual_model,
            max_tokens=MAX_OUTPUT_TOKENS,
            messages=[{"role": m.get("role", "user"), "content": m.get("content", "")} for m in messages],
            **kwargs
        ) as stream:
            for text in stream.text_stream:
                yield text


def check_connection(model: str = None) -> str:
    """Ask the model to say OK; used by the connectivity probe."""
    return generate_text("Say OK", model=model)
