import click
from lora_e5 import LoRaE5, LoRaE5Error


@click.command()
@click.option('-s', '--buffer-size', default=256, type=int)
@click.option('-c', '--count', default=100, type=int)
@click.argument('device')
def main(device, buffer_size, count):
    modem = LoRaE5.open_path(device, buffer_size)
    error_cnt = 0

    with modem:
        for i in range(count):
            try:
                if not modem.is_ok():
                    error_cnt += 1
            except LoRaE5Error:
                error_cnt += 1

    print('error_cnt', error_cnt)


if __name__ == '__main__':
    main()
