# apps/core/views.py

import logging
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

import apps
from .models import Usuario

logger = logging.getLogger(__name__)


@require_GET
def health_check(request):
    """
    Health check para monitoramento
    Banco, cache e channel layer
    """
    status = {
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
        'version': apps.__version__
    }

    try:
        # Verificar conexão com banco
        Usuario.objects.exists()
        status['database'] = 'ok'

        # Verificar Redis se configurado
        cache.set('health_check', 'ok', 60)
        cache.get('health_check')
        status['cache'] = 'ok'

        # Ida e volta no channel layer: a mensagem é consumida em seguida
        layer = get_channel_layer()
        if layer is not None:
            canal = async_to_sync(layer.new_channel)()
            async_to_sync(layer.send)(canal, {'type': 'health.check'})
            async_to_sync(layer.receive)(canal)
        status['channel_layer'] = 'ok' if layer is not None else 'disabled'

    except Exception as e:
        logger.error(f"❌ Health check falhou: {e}")
        status['status'] = 'unhealthy'
        status['error'] = str(e)
        return JsonResponse(status, status=500)

    return JsonResponse(status)
