"""Order management service: bulk CSV orders, order finalizing and webhook delivery."""